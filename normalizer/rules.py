"""
Deterministic normalization rules.

This file exists to make the fixed pipeline explicit: nothing here is
configurable at run time.
"""

TEXT_ENCODING = "utf-8"  # output is plain UTF-8, no BOM
UTF8_BOM = b"\xef\xbb\xbf"
NORMALIZED_DELIMITER = ","
LINE_TERMINATOR = "\n"

# Timestamps are recorded as Pacific wall-clock time and published as Eastern.
SOURCE_TIMEZONE = "America/Los_Angeles"
TARGET_TIMEZONE = "America/New_York"
# M/D/YY h:mm:ss AM|PM; hour 0-12, minutes and seconds always two digits
TIMESTAMP_PATTERN = r"([0-9]{1,2})/([0-9]{1,2})/([0-9]{2}) ([0-9]{1,2}):([0-9]{2}):([0-9]{2}) (AM|PM)"
# two-digit years from here up are 19xx, below are 20xx
TWO_DIGIT_YEAR_PIVOT = 69

ZIP_WIDTH = 5
ZIP_FILL = "0"

DURATION_PRECISION = 3

TIMESTAMP_COLUMN = "Timestamp"
ZIP_COLUMN = "ZIP"
FULL_NAME_COLUMN = "FullName"
ADDRESS_COLUMN = "Address"
FOO_DURATION_COLUMN = "FooDuration"
BAR_DURATION_COLUMN = "BarDuration"
TOTAL_DURATION_COLUMN = "TotalDuration"
NOTES_COLUMN = "Notes"

REQUIRED_COLUMNS = (
    TIMESTAMP_COLUMN,
    ZIP_COLUMN,
    FULL_NAME_COLUMN,
    ADDRESS_COLUMN,
    FOO_DURATION_COLUMN,
    BAR_DURATION_COLUMN,
    TOTAL_DURATION_COLUMN,
    NOTES_COLUMN,
)
