"""Canonical advisory records and CVE re-keying"""
import dataclasses
import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .errors import EncodeError

# This assumes the datetime being formatted is in UTC
DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class DefinitionEncoder(json.JSONEncoder):
    """Encodes advisory records into JSON format"""

    def default(self, o):
        if hasattr(o, 'encode_json'):
            return o.encode_json()
        return super().default(o)


@dataclass
class Cve:
    """A CVE referenced by an advisory, with optional per-CVE metadata"""
    cve_id: str
    cvss2: str = ''
    cvss3: str = ''
    cwe: str = ''
    impact: str = ''
    href: str = ''
    public: str = ''

    def encode_json(self) -> dict:
        return {
            'cveID': self.cve_id,
            'cvss2': self.cvss2,
            'cvss3': self.cvss3,
            'cwe': self.cwe,
            'impact': self.impact,
            'href': self.href,
            'public': self.public,
        }


@dataclass
class Bugzilla:
    """Bug tracker reference"""
    bugzilla_id: str
    url: str
    title: str

    def encode_json(self) -> dict:
        return {'bugzillaID': self.bugzilla_id, 'url': self.url, 'title': self.title}


@dataclass
class Cpe:
    """Affected platform identifier"""
    cpe: str

    def encode_json(self) -> dict:
        return {'cpe': self.cpe}


@dataclass
class Package:
    """An affected package and the version that fixes it"""
    name: str
    version: str
    arch: str = ''
    not_fixed_yet: bool = False
    modularity_label: str = ''

    def encode_json(self) -> dict:
        return {
            'name': self.name,
            'version': self.version,
            'arch': self.arch,
            'notFixedYet': self.not_fixed_yet,
            'modularityLabel': self.modularity_label,
        }


@dataclass
class Reference:
    """External reference attached to a definition"""
    source: str
    ref_id: str
    ref_url: str

    def encode_json(self) -> dict:
        return {'source': self.source, 'refID': self.ref_id, 'refURL': self.ref_url}


@dataclass
class Debian:
    """Debian-specific block; absent for RPM based sources"""
    cve_id: str
    more_info: str

    def encode_json(self) -> dict:
        return {'cveID': self.cve_id, 'moreInfo': self.more_info}


@dataclass
class Advisory:
    """Severity, CVE references, bug references, platforms and dates"""
    severity: str = ''
    cves: list[Cve] = field(default_factory=list)
    bugzillas: list[Bugzilla] = field(default_factory=list)
    affected_cpe_list: list[Cpe] = field(default_factory=list)
    issued: str = ''
    updated: str = ''

    def encode_json(self) -> dict:
        return {
            'severity': self.severity,
            'cves': self.cves,
            'bugzillaRefs': self.bugzillas,
            'affectedCPEList': self.affected_cpe_list,
            'issued': self.issued,
            'updated': self.updated,
        }


@dataclass
class Definition:
    """Canonical representation of one vulnerability advisory entry"""
    definition_id: str
    title: str
    description: str
    advisory: Advisory
    debian: Optional[Debian] = None
    affected_packs: list[Package] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)

    def encode_json(self) -> dict:
        data = {
            'definitionID': self.definition_id,
            'title': self.title,
            'description': self.description,
            'advisory': self.advisory,
        }
        if self.debian is not None:
            data['debian'] = self.debian
        data['affectedPackages'] = self.affected_packs
        data['references'] = self.references
        return data


# Shape of every <cveID>.json file; checked with jsonschema when requested
DEFINITIONS_SCHEMA = {
    'type': 'array',
    'items': {
        'type': 'object',
        'required': ['definitionID', 'title', 'description', 'advisory',
                     'affectedPackages', 'references'],
        'properties': {
            'definitionID': {'type': 'string'},
            'title': {'type': 'string'},
            'description': {'type': 'string'},
            'advisory': {
                'type': 'object',
                'required': ['severity', 'cves', 'bugzillaRefs', 'affectedCPEList',
                             'issued', 'updated'],
                'properties': {
                    'severity': {'type': 'string'},
                    'cves': {
                        'type': 'array',
                        'minItems': 1,
                        'maxItems': 1,
                        'items': {
                            'type': 'object',
                            'required': ['cveID'],
                            'properties': {'cveID': {'type': 'string', 'minLength': 1}},
                        },
                    },
                    'bugzillaRefs': {'type': 'array'},
                    'affectedCPEList': {'type': 'array'},
                    'issued': {'type': 'string'},
                    'updated': {'type': 'string'},
                },
            },
            'debian': {'type': 'object'},
            'affectedPackages': {
                'type': 'array',
                'items': {
                    'type': 'object',
                    'required': ['name', 'version'],
                },
            },
            'references': {'type': 'array'},
        },
    },
}


def normalize_date(value: str) -> str:
    """
    Normalize an OVAL date to DATE_FORMAT.
    Feed text that is not a recognizable date is kept as-is.
    """
    if not value:
        return ''

    if re.match(r'\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$', value):
        return value

    for fmt in ['%Y-%m-%d', '%Y-%m-%d %H:%M:%S', '%Y-%m-%dT%H:%M:%S']:
        try:
            return datetime.strptime(value, fmt).strftime(DATE_FORMAT)
        except ValueError:
            continue

    return value


def rekey_by_cve(ver_defs: dict[str, list[Definition]]) -> dict[str, dict[str, list[Definition]]]:
    """
    Fan out every definition across its CVEs.

    Each output record is a copy of its source definition whose advisory
    lists only the CVE it is stored under. Records are appended in input
    order; definitions without CVEs contribute nothing.

    Args:
        ver_defs: version -> definitions, as accumulated from the converters

    Returns:
        version -> CVE ID -> definitions
    """
    corpus: dict[str, dict[str, list[Definition]]] = {}
    for version, defs in ver_defs.items():
        by_cve = corpus.setdefault(version, {})
        for definition in defs:
            for cve in definition.advisory.cves:
                advisory = dataclasses.replace(definition.advisory, cves=[cve])
                by_cve.setdefault(cve.cve_id, []).append(
                    dataclasses.replace(definition, advisory=advisory)
                )
    return corpus


def encode_definitions(defs: list[Definition], validate: bool = False) -> str:
    """
    Serialize a record list as 2-space indented JSON.

    Args:
        defs: records stored under one CVE
        validate: check the output against DEFINITIONS_SCHEMA (needs jsonschema)

    Returns:
        JSON text, newline terminated
    """
    try:
        content = json.dumps(defs, cls=DefinitionEncoder, indent=2)
    except (TypeError, ValueError) as e:
        raise EncodeError(f"Failed to encode vuln data: {e}") from e

    if validate:
        from jsonschema import ValidationError, validate as validate_schema
        try:
            validate_schema(json.loads(content), schema=DEFINITIONS_SCHEMA)
        except ValidationError as e:
            raise EncodeError(f"Vuln data does not match schema: {e.message}") from e

    return content + '\n'
