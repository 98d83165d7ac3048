"""Countdown timers guarding one-time code resends."""

from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)


class ResendCooldown:
    """Decrementing counter driven by an asyncio task.

    `remaining` starts at `seconds` on start() and drops by one every
    `interval` seconds until it reaches zero. cancel() stops the task and
    the counter is never touched afterwards.
    """

    def __init__(self, seconds: int = 60, interval: float = 1.0) -> None:
        self.seconds = seconds
        self.interval = interval
        self.remaining = 0
        self._task: asyncio.Task | None = None
        self._disposed = False

    @property
    def can_resend(self) -> bool:
        return self.remaining == 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Reset the counter and begin counting down. Must be called inside a running loop."""
        if self._disposed:
            raise RuntimeError("Cooldown has been cancelled")
        self._stop_task()
        self.remaining = self.seconds
        if self.remaining > 0:
            self._task = asyncio.get_running_loop().create_task(self._countdown())

    def reset(self) -> None:
        """Stop counting down and allow an immediate resend."""
        self._stop_task()
        self.remaining = 0

    async def _countdown(self) -> None:
        while self.remaining > 0:
            await asyncio.sleep(self.interval)
            if self._disposed:
                return
            self.remaining -= 1

    def _stop_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def cancel(self) -> None:
        """Stop the countdown for good (component teardown)."""
        self._disposed = True
        task = self._task
        self._stop_task()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass


class CooldownRegistry:
    """One ResendCooldown per email address."""

    def __init__(self, seconds: int = 60, interval: float = 1.0) -> None:
        self.seconds = seconds
        self.interval = interval
        self._cooldowns: dict[str, ResendCooldown] = {}

    def get(self, email: str) -> ResendCooldown:
        key = email.strip().lower()
        cooldown = self._cooldowns.get(key)
        if cooldown is None:
            self.prune()
            cooldown = ResendCooldown(self.seconds, self.interval)
            self._cooldowns[key] = cooldown
        return cooldown

    def prune(self) -> int:
        """Drop cooldowns that have finished counting down."""
        idle = [key for key, cooldown in self._cooldowns.items() if cooldown.can_resend and not cooldown.running]
        for key in idle:
            del self._cooldowns[key]
        return len(idle)

    async def shutdown(self) -> None:
        """Cancel every running cooldown."""
        cooldowns = list(self._cooldowns.values())
        self._cooldowns.clear()
        for cooldown in cooldowns:
            await cooldown.cancel()
        if cooldowns:
            logger.info("Cancelled %d resend cooldowns", len(cooldowns))


_registry: CooldownRegistry | None = None


def get_cooldown_registry() -> CooldownRegistry:
    """Get or create the global cooldown registry."""
    global _registry
    if _registry is None:
        from src.core.config import get_settings

        _registry = CooldownRegistry(seconds=get_settings().otp_resend_cooldown_seconds)
    return _registry


async def shutdown_cooldowns() -> None:
    """Cancel all cooldowns. Call at app shutdown."""
    global _registry
    if _registry is not None:
        await _registry.shutdown()
        _registry = None
