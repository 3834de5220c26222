from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry

# Dedicated registry so the status server only exposes fin-space metrics
FINSPACE_REGISTRY = CollectorRegistry()

# Device Metrics
FREE_SPACE = Gauge(
    'finspace_free_space_gb',
    'Last observed free space in GB',
    ['device', 'tier'],
    registry=FINSPACE_REGISTRY
)

PROBE_ERRORS = Counter(
    'finspace_probe_errors_total',
    'Number of failed free space queries',
    ['device'],
    registry=FINSPACE_REGISTRY
)

# Release Metrics
RELEASES_MIGRATED = Counter(
    'finspace_releases_migrated_total',
    'Releases moved from incoming to archive',
    ['label'],
    registry=FINSPACE_REGISTRY
)

RELEASES_DELETED = Counter(
    'finspace_releases_deleted_total',
    'Releases deleted to free space',
    ['tier', 'label'],
    registry=FINSPACE_REGISTRY
)

BYTES_RELEASED = Counter(
    'finspace_bytes_released_total',
    'Bytes freed on a tier by deletions and migrations',
    ['tier'],
    registry=FINSPACE_REGISTRY
)

INTEGRITY_FAILURES = Counter(
    'finspace_integrity_failures_total',
    'Migrations aborted because entry counts did not match',
    ['label'],
    registry=FINSPACE_REGISTRY
)

# Loop Metrics
ROUND_DURATION = Histogram(
    'finspace_round_duration_seconds',
    'Time spent in one management round',
    registry=FINSPACE_REGISTRY,
    buckets=(0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 900.0, 3600.0)
)

ROUND_ERRORS = Counter(
    'finspace_round_errors_total',
    'Rounds aborted by an unexpected error',
    registry=FINSPACE_REGISTRY
)

LAST_ROUND = Gauge(
    'finspace_last_round_timestamp_seconds',
    'Unix time the last round completed',
    registry=FINSPACE_REGISTRY
)


class SpaceMetricsCollector:
    def record_free_space(self, device, tier, free_gb):
        """Record a free space reading"""
        FREE_SPACE.labels(device=device, tier=tier).set(free_gb)

    def record_probe_error(self, device):
        PROBE_ERRORS.labels(device=device).inc()

    def record_migration(self, label, size_bytes):
        """Record a completed incoming to archive migration"""
        RELEASES_MIGRATED.labels(label=label).inc()
        BYTES_RELEASED.labels(tier='incoming').inc(size_bytes)

    def record_deletion(self, tier, label, size_bytes):
        """Record a release deleted from a tier"""
        RELEASES_DELETED.labels(tier=tier, label=label).inc()
        BYTES_RELEASED.labels(tier=tier).inc(size_bytes)

    def record_integrity_failure(self, label):
        INTEGRITY_FAILURES.labels(label=label).inc()

    def record_round(self, duration, finished_at):
        """Record a completed round"""
        ROUND_DURATION.observe(duration)
        LAST_ROUND.set(finished_at)

    def record_round_error(self):
        ROUND_ERRORS.inc()
