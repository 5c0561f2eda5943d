"""System constants for dvf-metrics."""

# Transaction nature identifying an actual sale
SALE_NATURE = "Vente"

# Approximate city matching
CITY_SIMILARITY_THRESHOLD = 0.85

# Geographic bounds covering metropolitan and overseas France
MIN_LATITUDE = -50.0
MAX_LATITUDE = 51.0
MIN_LONGITUDE = -61.0
MAX_LONGITUDE = 77.0

# Year selected when the user gives none
DEFAULT_YEAR = 2018

# Input format
DEFAULT_CSV_SEPARATOR = ","
DATE_FORMAT = "%Y-%m-%d"

# Per-branch buffer of the metrics broadcast
DEFAULT_BROADCAST_BUFFER_SIZE = 16

# Remote archive layout
DEFAULT_URL_LAYOUT = "{base}/{year}/full.csv.gz"
DEFAULT_HTTP_TIMEOUT_S = 300.0
