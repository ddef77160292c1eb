import logging

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def handler(event, context):
    logger.info("echo event for %s: %s", context.aws_request_id, event)
    return {
        'ok': True,
        'input': event,
        'requestId': context.aws_request_id,
        'remainingMs': context.get_remaining_time_in_millis(),
    }
