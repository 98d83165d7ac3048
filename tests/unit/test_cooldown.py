"""Unit tests for resend cooldowns."""

import asyncio

import pytest

from src.core.cooldown import CooldownRegistry, ResendCooldown


class TestResendCooldown:
    """Tests for ResendCooldown."""

    def test_idle_cooldown_allows_resend(self) -> None:
        """Test that a fresh cooldown does not block."""
        cooldown = ResendCooldown(seconds=60)

        assert cooldown.remaining == 0
        assert cooldown.can_resend is True
        assert cooldown.running is False

    @pytest.mark.asyncio
    async def test_counts_down_to_zero(self) -> None:
        """Test that remaining drops by one per tick and stops at zero."""
        cooldown = ResendCooldown(seconds=3, interval=0.01)

        cooldown.start()
        assert cooldown.remaining == 3
        assert cooldown.can_resend is False

        await asyncio.wait_for(cooldown._task, timeout=1)

        assert cooldown.remaining == 0
        assert cooldown.can_resend is True
        assert cooldown.running is False

    @pytest.mark.asyncio
    async def test_restart_resets_counter(self) -> None:
        """Test that start() while running resets to the full duration."""
        cooldown = ResendCooldown(seconds=5, interval=0.01)
        cooldown.start()
        await asyncio.sleep(0.025)

        cooldown.start()

        assert cooldown.remaining == 5
        await cooldown.cancel()

    @pytest.mark.asyncio
    async def test_cancel_freezes_counter(self) -> None:
        """Test that nothing decrements after cancel()."""
        cooldown = ResendCooldown(seconds=60, interval=0.01)
        cooldown.start()
        await asyncio.sleep(0.035)

        await cooldown.cancel()
        frozen = cooldown.remaining
        await asyncio.sleep(0.03)

        assert cooldown.remaining == frozen
        assert cooldown.running is False

    @pytest.mark.asyncio
    async def test_reset_allows_immediate_resend(self) -> None:
        """Test that reset() stops the countdown and clears the counter."""
        cooldown = ResendCooldown(seconds=5, interval=0.01)
        cooldown.start()

        cooldown.reset()

        assert cooldown.remaining == 0
        assert cooldown.can_resend is True
        assert cooldown.running is False

    @pytest.mark.asyncio
    async def test_cannot_restart_after_cancel(self) -> None:
        """Test that a cancelled cooldown refuses to start again."""
        cooldown = ResendCooldown(seconds=5, interval=0.01)
        await cooldown.cancel()

        with pytest.raises(RuntimeError):
            cooldown.start()

    def test_start_requires_running_loop(self) -> None:
        """Test that start() outside an event loop fails loudly."""
        cooldown = ResendCooldown(seconds=5)

        with pytest.raises(RuntimeError):
            cooldown.start()


class TestCooldownRegistry:
    """Tests for CooldownRegistry."""

    def test_one_cooldown_per_normalized_email(self) -> None:
        """Test that addresses differing only in case share a cooldown."""
        registry = CooldownRegistry(seconds=30)

        assert registry.get("User@Example.com") is registry.get(" user@example.com")
        assert registry.get("user@example.com") is not registry.get("other@example.com")
        assert registry.get("user@example.com").seconds == 30

    @pytest.mark.asyncio
    async def test_prune_drops_finished_cooldowns(self) -> None:
        """Test that prune() removes idle entries and keeps running ones."""
        registry = CooldownRegistry(seconds=60, interval=0.01)
        busy = registry.get("busy@example.com")
        busy.start()
        registry.get("idle@example.com")

        assert registry.prune() == 1

        assert registry.get("busy@example.com") is busy
        assert busy.can_resend is False
        await registry.shutdown()

    def test_new_address_prunes_idle_entries(self) -> None:
        """Test that adding an address drops finished cooldowns first."""
        registry = CooldownRegistry(seconds=60)
        first = registry.get("first@example.com")

        registry.get("second@example.com")

        assert registry.get("first@example.com") is not first

    @pytest.mark.asyncio
    async def test_shutdown_cancels_everything(self) -> None:
        """Test that shutdown() stops every running countdown."""
        registry = CooldownRegistry(seconds=60, interval=0.01)
        first = registry.get("a@example.com")
        second = registry.get("b@example.com")
        first.start()
        second.start()

        await registry.shutdown()

        assert first.running is False
        assert second.running is False
        assert registry.get("a@example.com") is not first
