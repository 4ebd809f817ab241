from __future__ import annotations

import logging
import os
import time
import xml.etree.ElementTree as ET
from xml.sax.saxutils import escape as xml_escape
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

import requests

from .env_loader import load_env_files
from .exceptions import MissingCredentialsError

_logger = logging.getLogger(__name__)

# Ensure .env is loaded for library use as well (e.g., scripts importing SalesforceAPI)
load_env_files(quiet=True)

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
METADATA_NS = "http://soap.sforce.com/2006/04/metadata"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

_LIST_METADATA_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<soapenv:Envelope xmlns:soapenv="{env}" xmlns:met="{met}">
  <soapenv:Header>
    <met:SessionHeader><met:sessionId>{session}</met:sessionId></met:SessionHeader>
  </soapenv:Header>
  <soapenv:Body>
    <met:listMetadata>
      <met:queries><met:type>{mtype}</met:type></met:queries>
      <met:asOfVersion>{version}</met:asOfVersion>
    </met:listMetadata>
  </soapenv:Body>
</soapenv:Envelope>
"""

_READ_METADATA_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<soapenv:Envelope xmlns:soapenv="{env}" xmlns:met="{met}">
  <soapenv:Header>
    <met:SessionHeader><met:sessionId>{session}</met:sessionId></met:SessionHeader>
  </soapenv:Header>
  <soapenv:Body>
    <met:readMetadata>
      <met:type>{mtype}</met:type>
{names}
    </met:readMetadata>
  </soapenv:Body>
</soapenv:Envelope>
"""

# readMetadata accepts at most 10 full names per call
READ_METADATA_CHUNK = 10

# Repeated child elements of a CustomObject that are read back as lists
_READ_LIST_ELEMENTS = ("fields", "validationRules")


# ----------------------------------------------------------------------
# Configuration dataclass
# ----------------------------------------------------------------------
@dataclass
class SFConfig:
    """Configuration for Salesforce API authentication."""

    # Which auth flow to use – currently we only support client_credentials
    auth_flow: str = "client_credentials"

    # Base login URL (not the instance URL)
    login_url: str = "https://login.salesforce.com"

    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    # Optional: pre-provided token / instance URL (e.g. from `sf org display`)
    access_token: Optional[str] = None
    instance_url: Optional[str] = None

    # Optional: override API version (e.g. "v60.0"); otherwise auto-discover
    api_version: Optional[str] = None

    # Per-request timeout in seconds; every remote call is bounded by it
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> SFConfig:
        """Load configuration from environment variables."""
        return cls(
            auth_flow=os.getenv("SF_AUTH_FLOW", "client_credentials"),
            login_url=os.getenv("SF_LOGIN_URL", "https://login.salesforce.com"),
            client_id=os.getenv("SF_CLIENT_ID"),
            client_secret=os.getenv("SF_CLIENT_SECRET"),
            access_token=os.getenv("SF_ACCESS_TOKEN"),
            instance_url=os.getenv("SF_INSTANCE_URL"),
            api_version=os.getenv("SF_API_VERSION"),
            timeout=_env_float("SF_TIMEOUT", 30.0),
        )


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}") from None


def normalize_api_version(version: Optional[str]) -> Optional[str]:
    """'60.0' and 'v60.0' both become 'v60.0'."""
    if not version:
        return None
    version = version.strip()
    return version if version.startswith("v") else f"v{version}"


# ----------------------------------------------------------------------
# Main API client
# ----------------------------------------------------------------------
class SalesforceAPI:
    """Minimal Salesforce REST + Metadata API client using OAuth client-credentials."""

    def __init__(self, cfg: Optional[SFConfig] = None) -> None:
        self.cfg = cfg or SFConfig.from_env()
        self.session = requests.Session()
        self.access_token: Optional[str] = None
        self.instance_url: Optional[str] = None
        self.api_version: Optional[str] = None

    # --------------------------- Public methods -----------------------

    def connect(self) -> None:
        """Authenticate using either an existing token or configured auth flow."""
        if self.cfg.access_token and self.cfg.instance_url:
            _logger.debug("Using existing access token from configuration.")
            self.access_token = self.cfg.access_token
            self.instance_url = self.cfg.instance_url.rstrip("/")
        else:
            _logger.info("Performing OAuth login using auth flow: %s", self.cfg.auth_flow)
            self._login_via_auth_flow()

        if not self.access_token or not self.instance_url:
            raise RuntimeError("Authentication did not yield access_token and instance_url.")

        self.session.headers.update({"Authorization": f"Bearer {self.access_token}"})
        self.api_version = (
            normalize_api_version(self.cfg.api_version) or self._discover_latest_api_version()
        )
        _logger.info(
            "Connected to Salesforce instance=%s api=%s",
            self.instance_url,
            self.api_version,
        )

    def limits(self) -> Dict[str, Any]:
        """Return API usage limits."""
        return self._get(f"{self._data_url()}/limits").json()

    def query(self, soql: str) -> Dict[str, Any]:
        """Run a SOQL query (first page only)."""
        return self._get(f"{self._data_url()}/query", params={"q": soql}).json()

    def query_all_iter(self, soql: str) -> Iterator[Dict[str, Any]]:
        """Yield records across pages via nextRecordsUrl."""
        res = self.query(soql)
        yield from res.get("records", [])
        next_url = res.get("nextRecordsUrl")
        while next_url:
            res = self._get(f"{self.instance_url}{next_url}").json()
            yield from res.get("records", [])
            next_url = res.get("nextRecordsUrl")

    def describe_object(self, name: str) -> Dict[str, Any]:
        """Return /sobjects/{name}/describe."""
        return self._get(f"{self._data_url()}/sobjects/{name}/describe").json()

    def count_rows(self, name: str) -> int:
        """Return the row count of an sObject via ``SELECT COUNT()``."""
        res = self.query(f"SELECT COUNT() FROM {name}")
        return int(res.get("totalSize", 0))

    def list_metadata(self, metadata_type: str) -> List[Dict[str, Optional[str]]]:
        """Metadata API ``listMetadata`` for a single type.

        Each result is flattened into a dict keyed by element name
        (``fullName``, ``fileName``, ``namespacePrefix``...). Nil or empty
        elements become None.
        """
        version = (self.api_version or "").lstrip("v")
        body = _LIST_METADATA_TEMPLATE.format(
            env=SOAP_ENV_NS,
            met=METADATA_NS,
            session=self.access_token,
            mtype=metadata_type,
            version=version,
        )
        url = f"{self.instance_url}/services/Soap/m/{version}"
        r = self._post(
            url,
            data=body.encode("utf-8"),
            headers={"Content-Type": "text/xml; charset=UTF-8", "SOAPAction": '""'},
        )
        return _parse_list_metadata(r.content)

    def read_metadata(
        self, metadata_type: str, full_names: List[str]
    ) -> List[Dict[str, Any]]:
        """Metadata API ``readMetadata``, issued in chunks of 10 names.

        Each record comes back as a dict of its scalar elements, plus a list
        of dicts for the repeated ``fields`` and ``validationRules``
        elements. Names the org does not know are simply absent.
        """
        version = (self.api_version or "").lstrip("v")
        url = f"{self.instance_url}/services/Soap/m/{version}"
        records: List[Dict[str, Any]] = []
        for i in range(0, len(full_names), READ_METADATA_CHUNK):
            chunk = full_names[i : i + READ_METADATA_CHUNK]
            body = _READ_METADATA_TEMPLATE.format(
                env=SOAP_ENV_NS,
                met=METADATA_NS,
                session=self.access_token,
                mtype=metadata_type,
                names="\n".join(
                    f"      <met:fullNames>{xml_escape(n)}</met:fullNames>" for n in chunk
                ),
            )
            r = self._post(
                url,
                data=body.encode("utf-8"),
                headers={"Content-Type": "text/xml; charset=UTF-8", "SOAPAction": '""'},
            )
            records.extend(_parse_read_metadata(r.content))
        return records

    # --------------------------- Internal helpers --------------------

    def _data_url(self) -> str:
        return f"{self.instance_url}/services/data/{self.api_version}"

    def _login_via_auth_flow(self) -> None:
        """Dispatch to the configured auth flow."""
        if self.cfg.auth_flow == "client_credentials":
            self._client_credentials_login()
        else:
            raise RuntimeError(f"Unsupported SF_AUTH_FLOW: {self.cfg.auth_flow!r}")

    def _client_credentials_login(self) -> None:
        """Perform OAuth2 client credentials flow."""
        missing = [
            k
            for k, v in {
                "SF_CLIENT_ID": self.cfg.client_id,
                "SF_CLIENT_SECRET": self.cfg.client_secret,
                "SF_LOGIN_URL": self.cfg.login_url,
            }.items()
            if not v
        ]
        if missing:
            raise MissingCredentialsError(missing)

        token_url = f"{self.cfg.login_url.rstrip('/')}/services/oauth2/token"
        data = {
            "grant_type": "client_credentials",
            "client_id": self.cfg.client_id,
            "client_secret": self.cfg.client_secret,
        }

        _logger.debug("Requesting access token from %s", token_url)
        payload = self._post(token_url, data=data, auth_required=False).json()

        self.access_token = payload["access_token"]
        self.instance_url = payload["instance_url"].rstrip("/")

    def _discover_latest_api_version(self) -> str:
        """Find the latest available API version."""
        versions = self._get(f"{self.instance_url}/services/data/").json()
        best = sorted(versions, key=lambda v: float(v.get("version", "0")), reverse=True)[0]
        version_str = best.get("url", "").split("/")[-1]
        _logger.debug("Latest API version discovered: %s", version_str)
        return version_str

    # --------------------------- HTTP wrappers -----------------------

    def _get(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        auth_required: bool = True,
    ) -> requests.Response:
        return self._request("GET", url, params=params, auth_required=auth_required)

    def _post(
        self,
        url: str,
        *,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        auth_required: bool = True,
    ) -> requests.Response:
        return self._request(
            "POST", url, data=data, headers=headers, auth_required=auth_required
        )

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        auth_required: bool = True,
        retries: int = 3,
        backoff: float = 0.8,
    ) -> requests.Response:
        """Generic request with retry, timeout and logging."""
        hdrs: Dict[str, str] = dict(headers or {})
        if auth_required and self.access_token:
            hdrs["Authorization"] = f"Bearer {self.access_token}"

        for attempt in range(1, retries + 1):
            try:
                r = self.session.request(
                    method,
                    url,
                    params=params,
                    data=data,
                    headers=hdrs,
                    timeout=self.cfg.timeout,
                )
            except requests.RequestException as e:
                _logger.warning("Request error (attempt %d/%d): %s", attempt, retries, e)
                if attempt == retries:
                    raise
                time.sleep(backoff * attempt)
                continue

            if r.status_code < 400:
                return r

            if r.status_code in (429, 500, 502, 503, 504) and attempt < retries:
                _logger.warning("HTTP %s -> retrying %d/%d", r.status_code, attempt, retries)
                time.sleep(backoff * attempt)
                continue

            try:
                detail = r.json()
            except ValueError:
                detail = r.text
            _logger.error("HTTP %s error for %s: %s", r.status_code, url, detail)
            r.raise_for_status()
        raise RuntimeError("Exceeded maximum retries.")


def _parse_list_metadata(content: bytes) -> List[Dict[str, Optional[str]]]:
    root = ET.fromstring(content)
    return [_leaf_values(node) for node in root.iter(f"{{{METADATA_NS}}}result")]


def _leaf_values(node: ET.Element) -> Dict[str, Optional[str]]:
    """Scalar child elements of ``node`` keyed by local tag name."""
    item: Dict[str, Optional[str]] = {}
    for child in node:
        if len(child):
            continue
        tag = child.tag.split("}", 1)[-1]
        nil = child.get(f"{{{XSI_NS}}}nil") == "true"
        text = (child.text or "").strip()
        item[tag] = None if nil or not text else text
    return item


def _parse_read_metadata(content: bytes) -> List[Dict[str, Any]]:
    root = ET.fromstring(content)
    records: List[Dict[str, Any]] = []
    for node in root.iter(f"{{{METADATA_NS}}}records"):
        record: Dict[str, Any] = dict(_leaf_values(node))
        if not record.get("fullName"):
            continue
        for tag in _READ_LIST_ELEMENTS:
            record[tag] = [_leaf_values(c) for c in node.findall(f"{{{METADATA_NS}}}{tag}")]
        records.append(record)
    return records
