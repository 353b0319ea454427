"""Sorted string tables: blocks, index, bloom filter, footer, builder, readers and handles."""