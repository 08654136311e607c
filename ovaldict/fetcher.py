"""Module for downloading OVAL feed documents"""
import bz2
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

import requests

from .errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300
MAX_WORKERS = 4

REDHAT_URL = "https://www.redhat.com/security/data/oval/com.redhat.rhsa-RHEL{}.xml.bz2"
ORACLE_URL = "https://linux.oracle.com/security/oval/com.oracle.elsa-all.xml.bz2"


@dataclass
class FetchRequest:
    """A feed document to download"""
    url: str
    target: Optional[str] = None
    bzip2: bool = False


@dataclass
class FetchResult:
    """A downloaded feed document, decompressed"""
    url: str
    body: bytes
    target: Optional[str] = None


class Fetcher:
    """
    Downloads feed documents over HTTP(S).

    Documents are fetched concurrently, but results always come back in
    request order and only once every download has finished.
    """

    def __init__(
        self,
        http_proxy: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
        max_workers: int = MAX_WORKERS,
        session: Optional[requests.Session] = None
    ):
        self.timeout = timeout
        self.max_workers = max_workers
        self.session = session or requests.Session()
        if http_proxy:
            self.session.proxies.update({'http': http_proxy, 'https': http_proxy})

    def fetch(self, reqs: list[FetchRequest]) -> list[FetchResult]:
        """Download every request, raising FetchError on the first failure"""
        if not reqs:
            return []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(reqs))) as executor:
            futures = [executor.submit(self._fetch_one, req) for req in reqs]
            return [future.result() for future in futures]

    def _fetch_one(self, req: FetchRequest) -> FetchResult:
        logger.info("Fetching %s", req.url)
        try:
            response = self.session.get(req.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchError(f"Failed to fetch file: {e}", req.url) from e

        body = response.content
        if req.bzip2:
            try:
                body = bz2.decompress(body)
            except (OSError, ValueError) as e:
                raise FetchError(f"Failed to decompress bzip2 body: {e}", req.url) from e

        return FetchResult(url=req.url, body=body, target=req.target)


def redhat_requests(versions: list[str]) -> list[FetchRequest]:
    """One bzip2 document per supported Red Hat release"""
    return [FetchRequest(url=REDHAT_URL.format(ver), target=ver, bzip2=True) for ver in versions]


def oracle_requests() -> list[FetchRequest]:
    """Oracle publishes a single document covering every release"""
    return [FetchRequest(url=ORACLE_URL, bzip2=True)]
