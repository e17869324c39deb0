# campus_market/utils/retry.py
import logging

import redis
import requests
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from campus_market.utils.settings import COLLABORATOR_RETRY_ATTEMPTS, LOCK_RETRY_ATTEMPTS
from campus_market.utils.logging import get_logger

logger = get_logger(__name__)


def http_retry():
    """Item directory and payment gateway calls."""
    return retry(
        reraise=True,
        stop=stop_after_attempt(COLLABORATOR_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(requests.RequestException),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )


def lock_retry():
    # the buyer is waiting on checkout, so give up quickly
    return retry(
        reraise=True,
        stop=stop_after_attempt(LOCK_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.2),
        retry=retry_if_exception_type(redis.ConnectionError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
