"""Prometheus metrics for logcheck runs.

Each check is a short-lived process, so metrics are written to a file in the
text exposition format for node_exporter's textfile collector instead of
being served over HTTP.
"""

import logging

from prometheus_client import CollectorRegistry, Gauge, write_to_textfile

from logcheck.models import CheckResult, Severity


logger = logging.getLogger(__name__)


def build_registry(result: CheckResult) -> CollectorRegistry:
    """Create a registry holding the gauges of one check result."""
    registry = CollectorRegistry()

    status = Gauge(
        'logcheck_status',
        'Overall check status (0=OK, 1=WARNING, 2=CRITICAL, 3=UNKNOWN)',
        registry=registry,
    )
    file_status = Gauge(
        'logcheck_file_status',
        'Status of each checked log file (0=OK, 1=WARNING, 2=CRITICAL, 3=UNKNOWN)',
        ['path'],
        registry=registry,
    )
    matching_messages = Gauge(
        'logcheck_matching_messages',
        'Matching messages found in the last check',
        ['path', 'severity'],
        registry=registry,
    )
    lines_scanned = Gauge(
        'logcheck_lines_scanned',
        'Lines consumed from each log file in the last check',
        ['path'],
        registry=registry,
    )
    duration = Gauge('logcheck_check_duration_seconds', 'Duration of the last check', registry=registry)
    last_check = Gauge('logcheck_last_check_timestamp_seconds', 'Time of the last check', registry=registry)

    status.set(result.severity.exit_code)
    for file_result in result.files:
        file_status.labels(path=file_result.path).set(file_result.severity.exit_code)
        matching_messages.labels(path=file_result.path, severity=Severity.WARNING.value).set(
            file_result.warning_count
        )
        matching_messages.labels(path=file_result.path, severity=Severity.CRITICAL.value).set(
            file_result.critical_count
        )
        lines_scanned.labels(path=file_result.path).set(file_result.lines_scanned)
    duration.set(result.time)
    last_check.set_to_current_time()

    return registry


def write_metrics(path: str, result: CheckResult) -> bool:
    """Write the metrics of a check result to a textfile.

    Returns:
        True if written, False on error (the check result is not affected)
    """
    try:
        write_to_textfile(path, build_registry(result))
    except OSError as e:
        logger.warning(f'Failed to write metrics to {path}: {type(e).__name__}: {e}')
        return False
    logger.debug(f'Wrote metrics to {path}')
    return True
