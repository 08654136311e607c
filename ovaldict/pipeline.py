"""Generic fetch, convert and store pipeline shared by every source"""
import logging
from typing import Optional

from .config import Config
from .errors import ConvertError
from .meta import LastUpdatedLedger, feed_key
from .models import Definition, rekey_by_cve
from .oval import parse_oval
from .sources import SourceAdapter
from .store import prepare_source_dir, replace_corpus

logger = logging.getLogger(__name__)


def convert_documents(adapter: SourceAdapter, documents) -> dict[str, list[Definition]]:
    """Parse and convert every fetched document, appending per version"""
    ver_defs: dict[str, list[Definition]] = {}
    for doc in documents:
        root = parse_oval(doc.body, doc.url)
        try:
            converted = adapter.convert(root, doc.target)
        except ConvertError as e:
            if e.location is None:
                e.location = doc.url
            raise
        for version, defs in converted.items():
            ver_defs.setdefault(version, []).extend(defs)
    return ver_defs


def run_conversion(
    adapter: SourceAdapter,
    config: Config,
    ledger: Optional[LastUpdatedLedger] = None
) -> dict[str, dict[str, list[Definition]]]:
    """
    Replace a source's on-disk corpus with freshly converted feed data.

    Everything is fetched, parsed and converted in memory before the source
    directory is wiped. The ledger is read up front so an unreadable ledger
    stops the run before anything is deleted; the last updated date is only
    recorded once every file has been written.

    Args:
        adapter: Source to convert
        config: Run configuration
        ledger: Where to record success (defaults to the vuln dir's ledger)

    Returns:
        The corpus that was written, version -> CVE ID -> definitions
    """
    if ledger is None:
        ledger = LastUpdatedLedger.for_vuln_dir(config.vuln_dir)

    key = feed_key(adapter.name)
    logger.debug("Last updated date of %s: %s", key, ledger.get_last_updated(key))

    source_dir = prepare_source_dir(config.vuln_dir, adapter.name)

    logger.info("Fetching %s CVEs", adapter.display_name)
    documents = adapter.fetch_documents()

    logger.info("Converting %s CVEs", adapter.display_name)
    corpus = rekey_by_cve(convert_documents(adapter, documents))

    replace_corpus(source_dir, corpus, validate=config.validate, display_name=adapter.display_name)

    logger.info("Setting Last Updated Date")
    ledger.set_last_updated(key)
    return corpus
