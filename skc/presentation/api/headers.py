from typing import Dict

APPLICATION_NAME = "skcApp"


def create_alert(message: str, param: str) -> Dict[str, str]:
    """Headers the front end turns into a translated notification."""
    return {
        f"X-{APPLICATION_NAME}-alert": message,
        f"X-{APPLICATION_NAME}-params": param,
    }
