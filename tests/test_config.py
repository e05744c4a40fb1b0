from venuerank.config import (
    CORE_REGISTRY_BUCKETS,
    CORE_REGISTRY_NEWEST,
    HTTP_RETRY_STATUS_CODES,
    HTTP_TOO_MANY_REQUESTS,
    IDENTITY_ACCEPT_SCORE,
    IDENTITY_MIN_NAME_SIMILARITY,
    IDENTITY_MIN_OVERLAP,
    IDENTITY_NAME_WEIGHT,
    IDENTITY_SAMPLE_SIZE,
    PROFILE_CACHE_DURATION_SECONDS,
    SJR_BATCH_SIZE,
    SJR_MAX_CANDIDATES,
)

def test_registry_buckets_descending():
    """
    Test that registry buckets are ordered newest first so the first match wins.
    """
    years = [year for year, _ in CORE_REGISTRY_BUCKETS]
    assert years == sorted(years, reverse=True), f"Buckets out of order: {years}"
    assert CORE_REGISTRY_BUCKETS[0][1] == CORE_REGISTRY_NEWEST

def test_rate_limit_not_retried():
    """
    Test that throttling is never part of the automatic retry list.
    """
    assert HTTP_TOO_MANY_REQUESTS not in HTTP_RETRY_STATUS_CODES

def test_identity_thresholds_consistent():
    """
    Test that any candidate passing the name and overlap gates can be accepted.
    """
    assert IDENTITY_SAMPLE_SIZE >= IDENTITY_MIN_OVERLAP
    lowest_passing = IDENTITY_MIN_NAME_SIMILARITY * IDENTITY_NAME_WEIGHT + IDENTITY_MIN_OVERLAP
    assert lowest_passing >= IDENTITY_ACCEPT_SCORE, \
        f"Accept score {IDENTITY_ACCEPT_SCORE} unreachable at the minimum gates ({lowest_passing})"

def test_config_types():
    """
    Test that configuration values have correct types.
    """
    assert isinstance(SJR_BATCH_SIZE, int) and SJR_BATCH_SIZE >= 1
    assert isinstance(SJR_MAX_CANDIDATES, int) and SJR_MAX_CANDIDATES >= SJR_BATCH_SIZE
    assert PROFILE_CACHE_DURATION_SECONDS == 7 * 24 * 60 * 60
