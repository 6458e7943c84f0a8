"""HTTP client with bounded retries for outbound notification transports."""
import time
import logging
import requests

from utils.errors import TransportError

logger = logging.getLogger("metricwatch.http")


class HTTPClient:
    """Thin requests wrapper: per-call timeout, retry on transient status codes."""

    RETRYABLE_STATUS = {429, 500, 502, 503, 504}

    def __init__(self, base_url="", timeout=10, max_retries=2, backoff=0.5):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "Metricwatch/1.0"})

    def get(self, path="", params=None, timeout=None):
        return self._request("GET", path, params=params, timeout=timeout)

    def post(self, path="", json=None, headers=None, timeout=None, data=None):
        return self._request("POST", path, json=json, headers=headers, timeout=timeout, data=data)

    def _url(self, path):
        if not self.base_url:
            return path
        return f"{self.base_url}/{path.lstrip('/')}" if path else self.base_url

    def _request(self, method, path, timeout=None, **kwargs):
        url = self._url(path)
        timeout = timeout or self.timeout
        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                start = time.time()
                resp = self.session.request(method, url, timeout=timeout, **kwargs)
                latency = int((time.time() - start) * 1000)
                logger.debug(f"{method} {url} → {resp.status_code} ({latency}ms)")

                if 200 <= resp.status_code < 300:
                    try:
                        return resp.json()
                    except ValueError:
                        return resp.text

                if resp.status_code in self.RETRYABLE_STATUS and attempt < self.max_retries:
                    retry_after = resp.headers.get("Retry-After")
                    wait = float(retry_after) if retry_after else self.backoff * (2 ** attempt)
                    logger.warning(f"Retryable {resp.status_code} from {url}, waiting {wait:.1f}s (attempt {attempt + 1})")
                    last_error = TransportError(f"HTTP {resp.status_code} from {url}", status_code=resp.status_code)
                    time.sleep(min(wait, timeout))
                    continue

                raise TransportError(f"HTTP {resp.status_code} from {url}", status_code=resp.status_code)

            except requests.exceptions.RequestException as e:
                logger.warning(f"Request error for {url}: {e} (attempt {attempt + 1})")
                last_error = TransportError(f"Request to {url} failed: {e}")
                if attempt < self.max_retries:
                    time.sleep(self.backoff * (2 ** attempt))

        raise last_error or TransportError(f"Max retries exceeded for {url}")

    def close(self):
        self.session.close()
