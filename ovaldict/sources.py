"""Source adapters mapping vendor OVAL layouts onto canonical definitions"""
import logging
from typing import Optional

from .errors import ParseError
from .fetcher import FetchResult, Fetcher, oracle_requests, redhat_requests
from .models import (Advisory, Bugzilla, Cpe, Cve, Debian, Definition, Package,
                     Reference, normalize_date)
from .oval import Criteria, OVALDefinition, OVALRoot

logger = logging.getLogger(__name__)

EARLIER_THAN = ' is earlier than '

SUPPORTED_REDHAT_VERSIONS = ['5', '6', '7', '8']


def convert_advisory(ovaldef: OVALDefinition) -> Advisory:
    """Copy the <advisory> block of a definition into an Advisory, skipping blank <cve> elements"""
    adv = ovaldef.advisory
    return Advisory(
        severity=adv.severity,
        cves=[Cve(cve_id=c.cve_id, cvss2=c.cvss2, cvss3=c.cvss3, cwe=c.cwe,
                  impact=c.impact, href=c.href, public=c.public)
              for c in adv.cves if c.cve_id],
        bugzillas=[Bugzilla(bugzilla_id=b.bugzilla_id, url=b.url, title=b.title)
                   for b in adv.bugzillas],
        affected_cpe_list=[Cpe(cpe=c) for c in adv.affected_cpe_list],
        issued=normalize_date(adv.issued),
        updated=normalize_date(adv.updated),
    )


def convert_definition(ovaldef: OVALDefinition, packs: list[Package]) -> Definition:
    """Build a Definition from an OVAL definition and its affected packages"""
    debian = None
    if ovaldef.debian is not None:
        debian = Debian(cve_id=ovaldef.debian.cve_id, more_info=ovaldef.debian.more_info)

    return Definition(
        definition_id=ovaldef.definition_id,
        title=ovaldef.title,
        description=ovaldef.description,
        advisory=convert_advisory(ovaldef),
        debian=debian,
        affected_packs=packs,
        references=[Reference(source=r.source, ref_id=r.ref_id, ref_url=r.ref_url)
                    for r in ovaldef.references],
    )


def parse_earlier_than(comment: str) -> Optional[tuple[str, str]]:
    """
    Split a "<name> is earlier than <version>" criterion comment.
    e.g., "kernel is earlier than 0:3.10.0-1062.el7" -> ("kernel", "0:3.10.0-1062.el7")
    """
    if EARLIER_THAN not in comment:
        return None
    name, rest = comment.split(EARLIER_THAN, 1)
    version = rest.split(' ', 1)[0]
    return name.strip(), version


class SourceAdapter:
    """
    A vendor feed: how to fetch its documents and how to read them.

    Subclasses choose how records are attributed to versions. Either every
    record of a document goes under the version label the fetcher supplied,
    or each record carries its own release in its criteria.
    """

    name = ''
    display_name = ''

    def __init__(self, fetcher: Fetcher):
        self.fetcher = fetcher

    def fetch_documents(self) -> list[FetchResult]:
        raise NotImplementedError

    def convert(self, root: OVALRoot, version_label: Optional[str]) -> dict[str, list[Definition]]:
        raise NotImplementedError


class RedHatSource(SourceAdapter):
    """Red Hat: one document per release, records keyed by the fetched label"""

    name = 'redhat'
    display_name = 'RedHat'

    def __init__(self, fetcher: Fetcher, versions: Optional[list[str]] = None):
        super().__init__(fetcher)
        self.versions = list(versions) if versions else list(SUPPORTED_REDHAT_VERSIONS)

    def fetch_documents(self) -> list[FetchResult]:
        return self.fetcher.fetch(redhat_requests(self.versions))

    def convert(self, root: OVALRoot, version_label: Optional[str]) -> dict[str, list[Definition]]:
        """
        Convert a Red Hat document.

        Args:
            root: Parsed OVAL document
            version_label: Release the document was fetched for

        Returns:
            {version_label: definitions}
        """
        if version_label is None:
            raise ParseError("Red Hat documents need a version label")

        defs = []
        for ovaldef in root.definitions:
            if '** REJECT **' in ovaldef.title:
                continue
            defs.append(convert_definition(ovaldef, self._collect_packs(ovaldef.criteria)))
        return {version_label: defs}

    def _collect_packs(self, criteria: Criteria, label: str = '') -> list[Package]:
        """Walk the criteria tree collecting fixed packages and module labels"""
        for c in criteria.criterions:
            if c.comment.startswith('Module ') and c.comment.endswith(' is enabled'):
                label = c.comment[len('Module '):-len(' is enabled')]

        packs = []
        for c in criteria.criterions:
            parsed = parse_earlier_than(c.comment)
            if parsed:
                name, version = parsed
                packs.append(Package(name=name, version=version, modularity_label=label))

        for child in criteria.criterias:
            packs.extend(self._collect_packs(child, label))
        return packs


class OracleSource(SourceAdapter):
    """Oracle: one document for all releases, each record names its own"""

    name = 'oracle'
    display_name = 'Oracle'

    def fetch_documents(self) -> list[FetchResult]:
        return self.fetcher.fetch(oracle_requests())

    def convert(self, root: OVALRoot, version_label: Optional[str]) -> dict[str, list[Definition]]:
        """
        Convert an Oracle document. The fetched version label is ignored;
        a definition spanning several releases yields one record per release.
        """
        ver_defs: dict[str, list[Definition]] = {}
        for ovaldef in root.definitions:
            for os_ver, packs in self._collect_packs(ovaldef.criteria).items():
                ver_defs.setdefault(os_ver, []).append(convert_definition(ovaldef, packs))
        return ver_defs

    def _collect_packs(self, criteria: Criteria) -> dict[str, list[Package]]:
        """Group fixed packages by the release they apply to"""
        by_ver: dict[str, list[Package]] = {}
        for os_ver, pack in self._walk(criteria, '', ''):
            if not os_ver:
                logger.debug("Skipping %s: no Oracle Linux release in criteria", pack.name)
                continue
            packs = by_ver.setdefault(os_ver, [])
            if pack not in packs:
                packs.append(pack)
        return by_ver

    def _walk(self, criteria: Criteria, os_ver: str, arch: str) -> list[tuple[str, Package]]:
        for c in criteria.criterions:
            if c.comment.startswith('Oracle Linux ') and c.comment.endswith(' is installed'):
                os_ver = c.comment[len('Oracle Linux '):-len(' is installed')]
            elif c.comment.startswith('Oracle Linux arch is '):
                arch = c.comment[len('Oracle Linux arch is '):]

        found = []
        for c in criteria.criterions:
            parsed = parse_earlier_than(c.comment)
            if parsed:
                name, version = parsed
                found.append((os_ver, Package(name=name, version=version, arch=arch)))

        for child in criteria.criterias:
            found.extend(self._walk(child, os_ver, arch))
        return found


SOURCES = {
    RedHatSource.name: RedHatSource,
    OracleSource.name: OracleSource,
}
