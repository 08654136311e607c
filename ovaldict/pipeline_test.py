"""End-to-end tests for the conversion pipeline"""
import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from ovaldict.config import Config
from ovaldict.errors import FetchError, MetadataError, ParseError, WriteError
from ovaldict.fetcher import FetchResult
from ovaldict.meta import LastUpdatedLedger
from ovaldict.pipeline import run_conversion
from ovaldict.sources import OracleSource, RedHatSource

TESTDATA = Path(__file__).parent.parent / 'testdata' / 'OVAL'

SINGLE_RECORD_XML = b'''<?xml version="1.0" encoding="UTF-8"?>
<oval_definitions xmlns="http://oval.mitre.org/XMLSchema/oval-definitions-5">
  <definitions>
    <definition class="patch" id="oval:test:def:1" version="1">
      <metadata>
        <title>TEST-1: pkgA update</title>
        <description>Two CVEs in one advisory</description>
        <advisory>
          <severity>Moderate</severity>
          <cve>CVE-2020-1</cve>
          <cve>CVE-2020-2</cve>
        </advisory>
      </metadata>
      <criteria operator="AND">
        <criterion test_ref="oval:test:tst:1" comment="pkgA is earlier than 0:1.0-1"/>
      </criteria>
    </definition>
  </definitions>
</oval_definitions>'''


def read_sample(name):
    with open(TESTDATA / name, 'rb') as f:
        return f.read()


def make_fetcher(results):
    fetcher = mock.Mock()
    if isinstance(results, Exception):
        fetcher.fetch.side_effect = results
    else:
        fetcher.fetch.return_value = results
    return fetcher


class PipelineTestCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config = Config(vuln_dir=self._tmp.name)
        self.ledger = LastUpdatedLedger.for_vuln_dir(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def source_dir(self, name):
        return Path(self._tmp.name) / name

    def read_json(self, *parts):
        with open(Path(self._tmp.name).joinpath(*parts), encoding='utf-8') as f:
            return json.load(f)


class TestEndToEnd(PipelineTestCase):

    def test_fan_out_scenario(self):
        fetcher = make_fetcher([FetchResult(url='https://a', body=SINGLE_RECORD_XML, target='7')])
        run_conversion(RedHatSource(fetcher, versions=['7']), self.config, self.ledger)

        files = sorted(p.name for p in (self.source_dir('redhat') / '7').iterdir())
        self.assertEqual(files, ['CVE-2020-1.json', 'CVE-2020-2.json'])
        for cve_id in ['CVE-2020-1', 'CVE-2020-2']:
            data = self.read_json('redhat', '7', f"{cve_id}.json")
            self.assertEqual(len(data), 1)
            self.assertEqual([c['cveID'] for c in data[0]['advisory']['cves']], [cve_id])
            self.assertEqual([p['name'] for p in data[0]['affectedPackages']], ['pkgA'])

        self.assertIsNotNone(self.ledger.get_last_updated('oval-dict/redhat'))

    def test_redhat_per_document_versions(self):
        fetcher = make_fetcher([
            FetchResult(url='https://rhel7', body=read_sample('sample-redhat-7.xml'), target='7'),
            FetchResult(url='https://rhel6', body=SINGLE_RECORD_XML, target='6'),
        ])
        corpus = run_conversion(RedHatSource(fetcher), self.config, self.ledger)

        self.assertEqual(sorted(corpus), ['6', '7'])
        self.assertEqual(sorted(corpus['7']), ['CVE-2020-1', 'CVE-2020-2'])
        # Two advisories touch CVE-2020-1; both are kept
        data = self.read_json('redhat', '7', 'CVE-2020-1.json')
        self.assertEqual(
            [d['definitionID'] for d in data],
            ['oval:com.redhat.rhsa:def:20200001', 'oval:com.redhat.rhsa:def:20200002']
        )
        # The rejected advisory's CVE never shows up
        self.assertFalse((self.source_dir('redhat') / '7' / 'CVE-2020-9.json').exists())

    def test_same_version_accumulates_across_documents(self):
        fetcher = make_fetcher([
            FetchResult(url='https://a', body=SINGLE_RECORD_XML, target='7'),
            FetchResult(url='https://b', body=SINGLE_RECORD_XML, target='7'),
        ])
        run_conversion(RedHatSource(fetcher), self.config, self.ledger)
        self.assertEqual(len(self.read_json('redhat', '7', 'CVE-2020-1.json')), 2)

    def test_oracle_per_definition_versions(self):
        fetcher = make_fetcher([FetchResult(url='https://elsa', body=read_sample('sample-oracle.xml'))])
        run_conversion(OracleSource(fetcher), self.config, self.ledger)

        oracle = self.source_dir('oracle')
        self.assertEqual(sorted(p.name for p in oracle.iterdir()), ['7', '8'])
        self.assertEqual(
            sorted(p.name for p in (oracle / '8').iterdir()),
            ['CVE-2020-100.json', 'CVE-2020-101.json', 'CVE-2020-102.json']
        )
        data = self.read_json('oracle', '7', 'CVE-2020-100.json')
        self.assertEqual(data[0]['affectedPackages'][0]['arch'], 'x86_64')

    def test_rerun_is_byte_identical(self):
        def run():
            fetcher = make_fetcher([FetchResult(url='https://elsa', body=read_sample('sample-oracle.xml'))])
            run_conversion(OracleSource(fetcher), self.config, self.ledger)
            return {str(p.relative_to(self._tmp.name)): p.read_bytes()
                    for p in self.source_dir('oracle').rglob('*.json')}

        self.assertEqual(run(), run())

    def test_stale_cve_removed(self):
        stale = self.source_dir('redhat') / '6'
        stale.mkdir(parents=True)
        (stale / 'CVE-0000-0000.json').write_text('[]')

        fetcher = make_fetcher([FetchResult(url='https://a', body=SINGLE_RECORD_XML, target='6')])
        run_conversion(RedHatSource(fetcher), self.config, self.ledger)

        self.assertFalse((stale / 'CVE-0000-0000.json').exists())
        self.assertTrue((stale / 'CVE-2020-1.json').exists())


class TestFailures(PipelineTestCase):
    """Failures before the wipe leave the existing corpus alone"""

    def setUp(self):
        super().setUp()
        self.existing = self.source_dir('redhat') / '7' / 'CVE-0000-0000.json'
        self.existing.parent.mkdir(parents=True)
        self.existing.write_text('[]')

    def test_fetch_error(self):
        fetcher = make_fetcher(FetchError('Failed to fetch file', 'https://a'))
        with self.assertRaises(FetchError):
            run_conversion(RedHatSource(fetcher), self.config, self.ledger)
        self.assertTrue(self.existing.exists())
        self.assertIsNone(self.ledger.get_last_updated('oval-dict/redhat'))

    def test_parse_error_aborts_batch(self):
        """One bad document aborts the run, even after a good one"""
        fetcher = make_fetcher([
            FetchResult(url='https://good', body=SINGLE_RECORD_XML, target='7'),
            FetchResult(url='https://bad', body=b'<oval_definitions>', target='8'),
        ])
        with self.assertRaises(ParseError) as ctx:
            run_conversion(RedHatSource(fetcher), self.config, self.ledger)
        self.assertEqual(ctx.exception.location, 'https://bad')
        self.assertTrue(self.existing.exists())
        self.assertFalse((self.source_dir('redhat') / '7' / 'CVE-2020-1.json').exists())
        self.assertIsNone(self.ledger.get_last_updated('oval-dict/redhat'))

    def test_unsafe_cve_ids(self):
        """Blank CVEs are dropped and path-like ones stop the run before the wipe"""
        body = SINGLE_RECORD_XML.replace(
            b'<cve>CVE-2020-2</cve>',
            b'<cve>../../escaped</cve><cve>  </cve>'
        )
        fetcher = make_fetcher([FetchResult(url='https://a', body=body, target='7')])
        with self.assertRaises(WriteError):
            run_conversion(RedHatSource(fetcher), self.config, self.ledger)

        self.assertTrue(self.existing.exists())
        self.assertEqual(sorted(p.name for p in Path(self._tmp.name).iterdir()), ['redhat'])
        self.assertEqual(list(self.existing.parent.iterdir()), [self.existing])
        self.assertIsNone(self.ledger.get_last_updated('oval-dict/redhat'))

    def test_missing_label_names_document(self):
        fetcher = make_fetcher([FetchResult(url='https://unlabelled', body=SINGLE_RECORD_XML)])
        with self.assertRaises(ParseError) as ctx:
            run_conversion(RedHatSource(fetcher), self.config, self.ledger)
        self.assertEqual(ctx.exception.location, 'https://unlabelled')
        self.assertTrue(self.existing.exists())

    def test_corrupt_ledger_stops_before_wipe(self):
        ledger_path = Path(self._tmp.name) / 'last_updated.json'
        ledger_path.write_text('{not json')
        fetcher = make_fetcher([FetchResult(url='https://a', body=SINGLE_RECORD_XML, target='7')])
        with self.assertRaises(MetadataError) as ctx:
            run_conversion(RedHatSource(fetcher), self.config, self.ledger)
        self.assertEqual(ctx.exception.location, str(ledger_path))
        self.assertTrue(self.existing.exists())
        fetcher.fetch.assert_not_called()

    def test_ledger_untouched_on_store_failure(self):
        fetcher = make_fetcher([FetchResult(url='https://a', body=SINGLE_RECORD_XML, target='7')])
        with mock.patch('ovaldict.store.write_definitions', side_effect=OSError('disk full')):
            with self.assertRaises(OSError):
                run_conversion(RedHatSource(fetcher), self.config, self.ledger)
        self.assertIsNone(self.ledger.get_last_updated('oval-dict/redhat'))


if __name__ == '__main__':
    unittest.main()
