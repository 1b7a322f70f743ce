VERSION = "0.3.0"
BACKUP_FORMAT_VERSION = "1.0.0"
