import json
import logging

from combindex.log import configure_logging


def test_verbose_enables_debug():
    configure_logging(verbose=True)
    assert logging.getLogger('combindex').level == logging.DEBUG
    assert logging.getLogger().level == logging.WARNING
    configure_logging(verbose=False)
    assert logging.getLogger('combindex').level == logging.WARNING


def test_json_lines(capfd):
    configure_logging(verbose=True, log_json=True)
    logging.getLogger('combindex.space').debug("Skipped %s invalid elements before rank %s", 3, 7)
    parsed = json.loads(capfd.readouterr().err.strip())
    assert parsed['event'] == "Skipped 3 invalid elements before rank 7"
    assert parsed['level'] == 'debug'
    assert parsed['logger'] == 'combindex.space'
    assert 'timestamp' in parsed


def test_other_loggers_stay_quiet(capfd):
    configure_logging(verbose=True, log_json=True)
    logging.getLogger('somewhere.else').debug("noise")
    assert capfd.readouterr().err == ''


def test_no_stacked_handlers():
    configure_logging()
    configure_logging(log_json=True)
    assert len(logging.getLogger().handlers) == 1
