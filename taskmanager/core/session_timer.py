"""
Session Expiry Scheduling

Client-side helper that warns shortly before a session token lapses and forces
a logout when it does. Timers are one-shot and wall-clock driven; the returned
handle must be cancelled on logout or re-login so stale callbacks never fire
against a newer session.
"""
import logging
import threading
import time
from typing import Callable, Optional

from jose import jwt, JWTError

logger = logging.getLogger(__name__)

WARNING_LEAD_SECONDS = 5 * 60


class ExpiryNotice:
    """Handle over the armed warning/expiry timers."""

    def __init__(self, timers=None):
        self._timers = list(timers or [])

    @property
    def active(self) -> bool:
        return any(timer.is_alive() for timer in self._timers)

    def cancel(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers = []


def seconds_until_expiry(token: str, now: Optional[float] = None) -> float:
    """Remaining validity read from the token's exp claim (signature not checked)."""
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as e:
        raise ValueError("Malformed session token") from e
    exp = claims.get("exp")
    if exp is None:
        raise ValueError("Session token has no exp claim")
    return float(exp) - (time.time() if now is None else now)


def schedule_expiry_notice(
    token: str,
    on_warn: Callable[[], None],
    on_expire: Callable[[], None],
    *,
    now: Optional[float] = None,
    timer_factory=threading.Timer,
) -> ExpiryNotice:
    """
    Arm one-shot callbacks for the token's remaining lifetime.

    - Already expired: on_expire runs immediately and nothing is armed.
    - More than 5 minutes left: on_warn fires 5 minutes before expiry.
    - on_expire fires at expiry.
    """
    remaining = seconds_until_expiry(token, now)

    if remaining <= 0:
        logger.info("Token already expired, triggering logout")
        on_expire()
        return ExpiryNotice()

    timers = []
    if remaining > WARNING_LEAD_SECONDS:
        warn_timer = timer_factory(remaining - WARNING_LEAD_SECONDS, on_warn)
        warn_timer.daemon = True
        timers.append(warn_timer)
    else:
        logger.debug("Token expires in less than 5 minutes, skipping warning")

    expire_timer = timer_factory(remaining, on_expire)
    expire_timer.daemon = True
    timers.append(expire_timer)

    for timer in timers:
        timer.start()
    return ExpiryNotice(timers)
