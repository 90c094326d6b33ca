import json
import os
from typing import Any, Dict, List, Optional

from doctors_portal.core.logger import logger

DEFAULT_NOTIFICATIONS = {
    "email_enabled": False,
    "booking_subject": "Your appointment for {treatment} is confirmed",
    "booking_template": (
        "Dear {name},\n\n"
        "Your appointment for {treatment} on {date} at {slot} is confirmed.\n\n"
        "{clinic_name}"
    ),
    "payment_subject": "We have received your payment for {treatment}",
    "payment_template": (
        "Dear {name},\n\n"
        "Thank you for your payment for {treatment} on {date} at {slot}.\n"
        "Transaction id: {transaction_id}\n\n"
        "{clinic_name}"
    ),
}

def load_clinic_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads clinic configuration from JSON file.
    Falls back to defaults when the file is missing.
    Raises ValueError on malformed JSON.
    """
    if path is None:
        from doctors_portal.core.config import settings
        path = settings.CLINIC_CONFIG_PATH

    if not os.path.exists(path):
        logger.warning(f"⚠️ Clinic config '{path}' not found, using defaults.")
        return {"clinic_name": "Doctors Portal", "notifications": dict(DEFAULT_NOTIFICATIONS), "services": []}

    try:
        with open(path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        logger.critical(f"❌ Invalid JSON in clinic config '{path}': {e}")
        raise ValueError(f"Invalid JSON in config file: {e}")

    notifications = dict(DEFAULT_NOTIFICATIONS)
    notifications.update(config.get("notifications", {}))
    config["notifications"] = notifications
    config.setdefault("clinic_name", "Doctors Portal")
    config.setdefault("services", [])
    logger.info(f"✅ Clinic config loaded for: {config['clinic_name']}")
    return config

def get_seed_services(config: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Helper to get the service catalog used to seed the in-memory store.
    Returns: list of {'name': ..., 'slots': [...]} dicts.
    """
    return [s for s in config.get("services", []) if s.get("name")]
