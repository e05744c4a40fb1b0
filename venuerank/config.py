from __future__ import annotations

DBLP_AUTHOR_SEARCH_BASE = "https://dblp.org/search/author/api"
DBLP_PERSON_BASE = "https://dblp.org/pid"
DBLP_STREAM_BASE = "https://dblp.org/streams/conf"
DBLP_SPARQL_ENDPOINT = "https://sparql.dblp.org/sparql"
SCIMAGO_SEARCH_BASE = "https://www.scimagojr.com/journalsearch.php"

# SCImago pages are rendered client-side, so they are fetched through a reader
# proxy that returns the rendered page as plain text
RENDER_PROXY_BASE = "https://r.jina.ai/"

DEFAULT_INPUT = "data/input.csv"
DEFAULT_DICTIONARY_FILE = "data/cache.json"
# CORE snapshots are not bundled: export each edition from the CORE portal
# (portal.core.edu.au) and save it here as CORE_<year>.json, a JSON list of
# {"title", "acronym", "rank"} rows
DEFAULT_REGISTRY_DIR = "data/core"
DEFAULT_OUT_DIR = "output"

# Cached profile results are reused for a week; a cached DBLP pid never expires
PROFILE_CACHE_DURATION_SECONDS = 7 * 24 * 60 * 60

VALID_CORE_RANKS = ("A*", "A", "B", "C")
VALID_SJR_QUARTILES = ("Q1", "Q2", "Q3", "Q4")
NOT_AVAILABLE = "N/A"

# Year buckets for CORE registry snapshots, checked in order; the first
# bucket whose lower bound is <= the publication year wins, and anything older
# falls through to the oldest snapshot
CORE_REGISTRY_BUCKETS = (
    (2023, "CORE_2023"),
    (2021, "CORE_2021"),
    (2020, "CORE_2020"),
    (2018, "CORE_2018"),
    (2017, "CORE_2017"),
)
CORE_REGISTRY_OLDEST = "CORE_2014"
CORE_REGISTRY_NEWEST = "CORE_2023"

# Title and venue substrings that mark a publication as out of scope for ranking
IGNORE_KEYWORDS = (
    "workshop",
    "transactions",
    "poster",
    "demo",
    "abstract",
    "extended abstract",
    "doctoral consortium",
    "doctoral symposium",
    "computer communication review",
    "companion",
    "adjunct",
    "technical report",
    "tech report",
    "industry track",
    "tutorial notes",
    "working notes",
)

# Normalized journal names that denote preprint servers rather than journals
ARXIV_VENUE_NAMES = (
    "arxiv",
    "arxiv preprint",
    "arxiv e print",
    "arxiv e prints",
    "computing research repository",
    "corr",
)

# Publications whose derived page count is below this are treated as short
# papers or posters and excluded from ranking
MIN_PAGE_COUNT = 6

# conference matching thresholds
# ambiguous acronyms are disambiguated by full title only, with this minimum score
CORE_AMBIGUOUS_TITLE_THRESHOLD = 0.85

# whole-string fuzzy match between a venue and a registry title
CORE_FUZZY_THRESHOLD = 0.90

# both sides of a fuzzy comparison must be at least this long
CORE_FUZZY_MIN_LENGTH = 6

# journal quartile search
SJR_MAX_CANDIDATES = 8
SJR_BATCH_SIZE = 4
SJR_EARLY_STOP_SCORE = 0.98

# identity resolution
# maximum raw hits requested from the author search endpoint
DBLP_SEARCH_MAX_HITS = 500

# a base pid with more hits than this is treated as a merged hub listing
DBLP_HUB_HIT_THRESHOLD = 4

# number of suffixed sub-identities synthesized for a hub
DBLP_MAX_HUB_VARIANTS = 150

# upper bound on publications fetched per candidate during guess-and-check
DBLP_SAMPLE_FETCH_LIMIT = 200

# number of local publications used as the identity sample
IDENTITY_SAMPLE_SIZE = 7

# candidates whose name similarity falls below this are not checked
IDENTITY_MIN_NAME_SIMILARITY = 0.65

# a sample title counts as overlapping when a fetched title scores above this
IDENTITY_TITLE_OVERLAP_THRESHOLD = 0.85

# a candidate needs at least this many overlapping titles to be considered
IDENTITY_MIN_OVERLAP = 2

# weight of the name similarity in the candidate score
IDENTITY_NAME_WEIGHT = 2.0

# minimum combined score for accepting the best candidate
IDENTITY_ACCEPT_SCORE = 2.5

# local publication to DBLP record matching
MATCH_TITLE_THRESHOLD = 0.90
MATCH_YEAR_WINDOW = 1

# HTTP request configuration
# Default timeout for HTTP requests (in seconds)
HTTP_TIMEOUT_DEFAULT = 10.0
HTTP_TIMEOUT_RENDER = 30.0

# Exponential backoff configuration for retries
HTTP_BACKOFF_INITIAL = 0.25  # Initial backoff delay in seconds
HTTP_MAX_RETRIES = 2         # Maximum number of retry attempts

# HTTP status codes that should trigger retries
# 429 is deliberately absent: throttling aborts the run instead of being retried
HTTP_RETRY_STATUS_CODES = (408, 500, 502, 503, 504)
HTTP_TOO_MANY_REQUESTS = 429
