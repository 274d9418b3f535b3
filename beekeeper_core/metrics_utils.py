import os

from prometheus_client import Counter, start_http_server


class _NullCounter:
    def inc(self, amount=1):
        return None


def init_metrics(logger):
    """Initialize Prometheus metrics if METRICS_PORT is set.

    Returns a dict with keys: enabled, updates, failures, passes, pass_errors.
    Counters are no-ops when metrics are disabled.
    """
    result = {
        'enabled': False,
        'updates': _NullCounter(),
        'failures': _NullCounter(),
        'passes': _NullCounter(),
        'pass_errors': _NullCounter(),
    }
    port = os.getenv('METRICS_PORT')
    if not port:
        return result
    addr = os.getenv('METRICS_ADDR', '0.0.0.0')
    try:
        start_http_server(int(port), addr=addr)
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to start metrics: {e}")
        return result
    result['updates'] = Counter('beekeeper_updates_total', 'Number of service updates submitted')
    result['failures'] = Counter('beekeeper_update_failures_total', 'Number of services that failed a pass')
    result['passes'] = Counter('beekeeper_passes_total', 'Number of completed reconciliation passes')
    result['pass_errors'] = Counter('beekeeper_pass_errors_total', 'Number of passes aborted while listing services')
    result['enabled'] = True
    logger.info(f"Prometheus metrics server on {addr}:{port}")
    return result
