"""Pushrelay bounded context — push notification dispatch.

Watches pending notification records, delivers each through the push gateway
and records the outcome (sent, failed, duplicate) back on the record. Failed
records can be re-armed for another attempt; terminal records are reaped by a
retention sweep.
"""

from protean.domain import Domain

from pushrelay.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

pushrelay = Domain(name="pushrelay")
