PROGRAM_ID = 'git_backup'

# directories next to the bins in the backup location, and next to the clones in the restore work location
SCRATCH_DIR_NAME = 'temp'
LOGS_DIR_NAME = 'logs'
RESERVED_DIR_NAMES = (SCRATCH_DIR_NAME, LOGS_DIR_NAME)

# segment naming
SEGMENT_SUFFIX_FORMAT = '.z{:02d}'
