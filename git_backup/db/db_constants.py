DB_FILE_NAME = 'manifest.db'
DB_MAGIC_INDEX = 0
DB_VERSION = 1
