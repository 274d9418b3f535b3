import os

import requests


def notify_event(event_type: str, payload: dict, logger) -> None:
    url = os.getenv('WEBHOOK_URL')
    if not url:
        return
    try:
        requests.post(url, json={'event': event_type, **payload}, timeout=5)
    except requests.RequestException as e:
        logger.warning(f"Webhook notify failed: {e}")
