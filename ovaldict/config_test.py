"""Unit tests for logging setup"""
import json
import logging
import os
import tempfile
import unittest

from ovaldict.config import Config, JSONFormatter, setup_logger


class TestSetupLogger(unittest.TestCase):

    def tearDown(self):
        logger = logging.getLogger('ovaldict')
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    def test_levels(self):
        self.assertEqual(setup_logger(Config()).level, logging.INFO)
        self.assertEqual(setup_logger(Config(debug=True)).level, logging.DEBUG)

    def test_handlers_replaced(self):
        setup_logger(Config())
        logger = setup_logger(Config())
        self.assertEqual(len(logger.handlers), 1)

    def test_log_to_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_dir = os.path.join(tmp, 'log')
            logger = setup_logger(Config(log_to_file=True, log_dir=log_dir))
            logging.getLogger('ovaldict.pipeline').info("Fetching RedHat CVEs")
            for handler in logger.handlers:
                handler.flush()
            with open(os.path.join(log_dir, 'oval-dict.log'), encoding='utf-8') as f:
                self.assertIn('Fetching RedHat CVEs', f.read())
            self.tearDown()

    def test_json_formatter(self):
        record = logging.LogRecord('ovaldict.store', logging.INFO, __file__, 1,
                                   "Creating %s CVEs", ('Oracle',), None)
        entry = json.loads(JSONFormatter().format(record))
        self.assertEqual(entry['msg'], 'Creating Oracle CVEs')
        self.assertEqual(entry['level'], 'INFO')
        self.assertEqual(entry['logger'], 'ovaldict.store')


if __name__ == '__main__':
    unittest.main()
