"""
Configuration constants for photo merger.
"""

# --- File Type Definitions ---
IMAGE_EXTS = {
    '.jpg', '.jpeg', '.png', '.tiff', '.tif', '.bmp', '.webp', '.heic', '.heif',
    '.raw', '.cr2', '.nef', '.arw', '.dng',
}
VIDEO_EXTS = {'.mp4', '.avi', '.mov', '.mkv', '.wmv', '.flv', '.webm', '.m4v'}

# Dated by filename instead of EXIF: video metadata tends to carry the
# encoding date rather than the recording date.
FILENAME_DATED_EXTS = VIDEO_EXTS | {'.gif'}

# Sidecars written by Google Takeout next to every media file
SIDECAR_EXTS = {'.json'}

# --- Metadata Parsing ---
# Priority order for the capture date of an image
DATE_TAGS = [
    'EXIF DateTimeOriginal',
    'EXIF DateTimeDigitized',
    'Image DateTime',
]

# Ordered subset of capture attributes that make up an image fingerprint
FINGERPRINT_TAGS = [
    ('make', 'Image Make'),
    ('model', 'Image Model'),
    ('datetime', 'EXIF DateTimeOriginal'),
    ('orientation', 'Image Orientation'),
    ('exposure', 'EXIF ExposureTime'),
    ('fnumber', 'EXIF FNumber'),
    ('iso', 'EXIF ISOSpeedRatings'),
    ('focal_length', 'EXIF FocalLength'),
    ('flash', 'EXIF Flash'),
    ('white_balance', 'EXIF WhiteBalance'),
    ('width', 'EXIF ExifImageWidth'),
    ('height', 'EXIF ExifImageLength'),
]
NO_EXIF_SENTINEL = "no-exif"

# Filename dates are only trusted within this year range
FILENAME_MIN_YEAR = 2009
FILENAME_MAX_YEAR = 2039

# --- Cache ---
CACHE_FILENAME = ".photo_merger_cache.db"
CACHE_SCHEMA_VERSION = "1"

# --- Merge ---
MAX_RENAME_ATTEMPTS = 9999
DEFAULT_WORKERS = 4
