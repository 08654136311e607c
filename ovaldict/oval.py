"""Module for parsing OVAL definition documents into a generic tree"""
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Optional, Union

from .errors import ParseError


# OVAL XML namespaces
NAMESPACES = {
    'oval': 'http://oval.mitre.org/XMLSchema/oval-common-5',
    'oval-def': 'http://oval.mitre.org/XMLSchema/oval-definitions-5',
}


@dataclass
class Generator:
    """Document generator metadata"""
    product_name: str = ''
    product_version: str = ''
    schema_version: str = ''
    timestamp: str = ''


@dataclass
class Affected:
    """<affected> block of a definition's metadata"""
    family: str = ''
    platforms: list[str] = field(default_factory=list)
    products: list[str] = field(default_factory=list)


@dataclass
class Reference:
    """<reference> element of a definition's metadata"""
    source: str
    ref_id: str
    ref_url: str


@dataclass
class CveElement:
    """<cve> element of an advisory, with the attributes vendors attach"""
    cve_id: str
    cvss2: str = ''
    cvss3: str = ''
    cwe: str = ''
    impact: str = ''
    href: str = ''
    public: str = ''


@dataclass
class BugzillaElement:
    """<bugzilla> element of an advisory"""
    bugzilla_id: str
    url: str
    title: str


@dataclass
class AdvisoryElement:
    """<advisory> block of a definition's metadata"""
    severity: str = ''
    cves: list[CveElement] = field(default_factory=list)
    bugzillas: list[BugzillaElement] = field(default_factory=list)
    affected_cpe_list: list[str] = field(default_factory=list)
    issued: str = ''
    updated: str = ''


@dataclass
class DebianElement:
    """<debian> block found in Debian-style metadata"""
    cve_id: str = ''
    more_info: str = ''


@dataclass
class Criterion:
    """Leaf test of a criteria tree"""
    test_ref: str
    comment: str
    negate: bool = False


@dataclass
class Criteria:
    """Node of a definition's criteria tree"""
    operator: str = 'AND'
    criterions: list[Criterion] = field(default_factory=list)
    criterias: list['Criteria'] = field(default_factory=list)


@dataclass
class OVALDefinition:
    """Represents a single OVAL definition, without any vendor interpretation"""
    definition_id: str
    definition_class: str
    title: str = ''
    description: str = ''
    affected: list[Affected] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)
    advisory: AdvisoryElement = field(default_factory=AdvisoryElement)
    debian: Optional[DebianElement] = None
    criteria: Criteria = field(default_factory=Criteria)


@dataclass
class OVALRoot:
    """Represents a parsed OVAL document"""
    generator: Generator
    definitions: list[OVALDefinition] = field(default_factory=list)


class OVALParser:
    """
    Parser for OVAL definition documents.

    The parser is purely syntactic: it accepts any well-formed document and
    maps whatever it finds onto the generic tree, leaving missing elements
    empty. Vendor specific interpretation happens in the source adapters.
    """

    def __init__(self, xml_content: Union[bytes, str], url: Optional[str] = None):
        self.url = url
        try:
            self.root = ET.fromstring(xml_content)
        except ET.ParseError as e:
            raise ParseError(f"Failed to unmarshal xml: {e}", url) from e
        self.document = self._parse_document()

    def _parse_document(self) -> OVALRoot:
        """Parse the entire OVAL document"""
        generator_elem = self.root.find('oval-def:generator', NAMESPACES)
        generator = Generator(
            product_name=self._get_text(generator_elem, 'oval:product_name'),
            product_version=self._get_text(generator_elem, 'oval:product_version'),
            schema_version=self._get_text(generator_elem, 'oval:schema_version'),
            timestamp=self._get_text(generator_elem, 'oval:timestamp'),
        )

        doc = OVALRoot(generator=generator)
        definitions_elem = self.root.find('oval-def:definitions', NAMESPACES)
        if definitions_elem is not None:
            for def_elem in definitions_elem.findall('oval-def:definition', NAMESPACES):
                doc.definitions.append(self._parse_definition(def_elem))
        return doc

    def _get_text(self, parent: Optional[ET.Element], tag: str, default: str = '') -> str:
        """Get text content of a child element"""
        if parent is None:
            return default
        elem = parent.find(tag, NAMESPACES)
        return elem.text.strip() if elem is not None and elem.text else default

    def _get_date(self, parent: Optional[ET.Element], tag: str) -> str:
        """Get the date attribute of an <issued>/<updated> element"""
        if parent is None:
            return ''
        elem = parent.find(tag, NAMESPACES)
        return elem.get('date', '') if elem is not None else ''

    def _parse_definition(self, def_elem: ET.Element) -> OVALDefinition:
        """Parse a single OVAL definition element"""
        definition = OVALDefinition(
            definition_id=def_elem.get('id', ''),
            definition_class=def_elem.get('class', ''),
        )

        metadata = def_elem.find('oval-def:metadata', NAMESPACES)
        if metadata is not None:
            definition.title = self._get_text(metadata, 'oval-def:title')
            definition.description = self._get_text(metadata, 'oval-def:description')

            for affected_elem in metadata.findall('oval-def:affected', NAMESPACES):
                definition.affected.append(Affected(
                    family=affected_elem.get('family', ''),
                    platforms=[e.text.strip() for e in affected_elem.findall('oval-def:platform', NAMESPACES)
                               if e.text],
                    products=[e.text.strip() for e in affected_elem.findall('oval-def:product', NAMESPACES)
                              if e.text],
                ))

            for ref in metadata.findall('oval-def:reference', NAMESPACES):
                definition.references.append(Reference(
                    source=ref.get('source', ''),
                    ref_id=ref.get('ref_id', ''),
                    ref_url=ref.get('ref_url', ''),
                ))

            advisory = metadata.find('oval-def:advisory', NAMESPACES)
            if advisory is not None:
                definition.advisory = self._parse_advisory(advisory)

            debian = metadata.find('oval-def:debian', NAMESPACES)
            if debian is not None:
                definition.debian = DebianElement(
                    cve_id=self._get_text(debian, 'oval-def:dsa'),
                    more_info=self._get_text(debian, 'oval-def:moreinfo'),
                )

        criteria = def_elem.find('oval-def:criteria', NAMESPACES)
        if criteria is not None:
            definition.criteria = self._parse_criteria(criteria)

        return definition

    def _parse_advisory(self, advisory: ET.Element) -> AdvisoryElement:
        """Parse the vendor <advisory> block"""
        result = AdvisoryElement(
            severity=self._get_text(advisory, 'oval-def:severity'),
            issued=self._get_date(advisory, 'oval-def:issued'),
            updated=self._get_date(advisory, 'oval-def:updated'),
        )

        for cve in advisory.findall('oval-def:cve', NAMESPACES):
            result.cves.append(CveElement(
                cve_id=(cve.text or '').strip(),
                cvss2=cve.get('cvss2', ''),
                cvss3=cve.get('cvss3', ''),
                cwe=cve.get('cwe', ''),
                impact=cve.get('impact', ''),
                href=cve.get('href', ''),
                public=cve.get('public', ''),
            ))

        for bug in advisory.findall('oval-def:bugzilla', NAMESPACES):
            result.bugzillas.append(BugzillaElement(
                bugzilla_id=bug.get('id', ''),
                url=bug.get('href', ''),
                title=(bug.text or '').strip(),
            ))

        cpe_list = advisory.find('oval-def:affected_cpe_list', NAMESPACES)
        if cpe_list is not None:
            result.affected_cpe_list = [e.text.strip() for e in cpe_list.findall('oval-def:cpe', NAMESPACES)
                                        if e.text]

        return result

    def _parse_criteria(self, criteria: ET.Element) -> Criteria:
        """Parse a <criteria> element and its nested children"""
        node = Criteria(operator=criteria.get('operator', 'AND'))
        for child in criteria:
            if child.tag == f"{{{NAMESPACES['oval-def']}}}criterion":
                node.criterions.append(Criterion(
                    test_ref=child.get('test_ref', ''),
                    comment=child.get('comment', ''),
                    negate=child.get('negate', 'false').lower() == 'true',
                ))
            elif child.tag == f"{{{NAMESPACES['oval-def']}}}criteria":
                node.criterias.append(self._parse_criteria(child))
        return node

    def get_definitions(self) -> list[OVALDefinition]:
        """Return all parsed OVAL definitions"""
        return self.document.definitions

    def get_document(self) -> OVALRoot:
        """Return the parsed OVAL document"""
        return self.document


def parse_oval(body: Union[bytes, str], url: Optional[str] = None) -> OVALRoot:
    """Parse raw OVAL XML into an OVALRoot, raising ParseError on malformed input"""
    return OVALParser(body, url).get_document()
