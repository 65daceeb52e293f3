"""HTTP Request Headers and Constants

Headers attached to every outbound request made by the publisher
"""

from typing import Dict

# User-Agent string for document service, relay and image requests
USER_AGENT = "feishu-clipper/0.3.0 (python, httpx)"

# Headers sent with every JSON API call
JSON_HEADERS: Dict[str, str] = {
    "Content-Type": "application/json; charset=utf-8",
    "Accept": "application/json",
}
