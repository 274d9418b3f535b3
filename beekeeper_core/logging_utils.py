import json
import logging
import os
import sys
from datetime import datetime, timezone

LOG_FILE_NAME = 'beekeeper_updater.log'


class JSONFormatter(logging.Formatter):
    def format(self, record):
        payload = {
            'ts': datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ'),
            'level': record.levelname,
            'msg': record.getMessage(),
            'logger': record.name,
        }
        if record.exc_info:
            payload['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(name: str = 'beekeeper_updater') -> logging.Logger:
    """Configure root logging from LOG_LEVEL, LOG_FORMAT and LOG_DIR."""
    log_level = os.getenv('LOG_LEVEL', 'INFO').upper()

    handlers = [logging.StreamHandler(sys.stdout)]
    log_dir = os.getenv('LOG_DIR')
    if log_dir:
        try:
            os.makedirs(log_dir, exist_ok=True)
            handlers.append(logging.FileHandler(os.path.join(log_dir, LOG_FILE_NAME)))
        except OSError as e:
            print(f"Cannot write logs to {log_dir}: {e}", file=sys.stderr)

    logging.basicConfig(level=getattr(logging, log_level, logging.INFO), handlers=handlers, force=True)

    fmt = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
    if os.getenv('LOG_FORMAT', 'plain').lower() == 'json':
        fmt = JSONFormatter()
    for h in logging.getLogger().handlers:
        h.setFormatter(fmt)
    # urllib3 logs every request at debug level
    logging.getLogger('urllib3').setLevel(max(logging.INFO, logging.getLogger().level))
    return logging.getLogger(name)
