"""Write-ahead log records, writer and reader."""