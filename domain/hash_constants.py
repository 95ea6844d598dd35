"""Hash and naming constants for the Yarn cache archives."""

# MD5 keeps archive names compatible with blobs published by earlier runs.
HASH_ALGORITHM = "md5"
BLOCK_SIZE = 8192  # 8KB block size for file processing
ARCHIVE_PREFIX = "yarn-pre-cache-"
ARCHIVE_SUFFIX = ".zip"
