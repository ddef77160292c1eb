import json
import logging

from lambda_runtime_client import logs


def test_log_event_emits_json(caplog):
    caplog.set_level(logging.INFO, logger=logs.LOGGER_NAME)

    logs.log_event(logs.get_logger('runtime'), 'info', 'Function execution started',
                   requestId='req-1', deadlineMs=5)

    record = caplog.records[-1]
    assert record.levelno == logging.INFO
    assert record.name == 'lambda_runtime_client.runtime'
    entry = json.loads(record.getMessage())
    assert entry['level'] == 'INFO'
    assert entry['message'] == 'Function execution started'
    assert entry['requestId'] == 'req-1'
    assert entry['deadlineMs'] == 5
    assert 'timestamp' in entry


def test_log_event_respects_level(caplog):
    caplog.set_level(logging.WARNING, logger=logs.LOGGER_NAME)

    logger = logs.get_logger()
    logs.log_event(logger, 'info', 'hidden')
    logs.log_event(logger, 'warning', 'shown')

    messages = [json.loads(r.getMessage())['message'] for r in caplog.records]
    assert messages == ['shown']


def test_configure_sets_package_level():
    logs.configure('debug')

    assert logs.get_logger().level == logging.DEBUG
    logs.configure('INFO')


def test_lambda_level_names_are_mapped():
    assert logs.level_name('warn') == 'WARNING'
    assert logs.level_name('TRACE') == 'DEBUG'
    assert logs.level_name('fatal') == 'CRITICAL'
    assert logs.level_name('nonsense') == 'INFO'
