import asyncio

from moodcore.config import Settings
from moodcore.context import SessionContext
from moodcore.escalation import EscalationPolicy, QueuedNavigator


def _policy(policy="once", delay=0.05):
    ctx = SessionContext(user="alice")
    nav = QueuedNavigator()
    s = Settings(ESCALATION_POLICY=policy, ESCALATION_DELAY=delay)
    return EscalationPolicy(ctx, nav, s), ctx, nav


def test_streak_counts_only_sad():
    pol, ctx, nav = _policy()

    async def scenario():
        for e in ["happy", "sad", "neutral", "angry"]:
            pol.on_detection(e)
        return ctx.get_sad_streak(), pol.pending

    streak, pending = asyncio.run(scenario())
    assert streak == 1 and pending == 0
    assert nav.targets == []


def test_threshold_schedules_delayed_navigation():
    pol, ctx, nav = _policy(delay=0.2)

    async def scenario():
        assert pol.on_detection("sad") is False
        assert pol.on_detection("sad") is True
        assert ctx.get_sad_streak() == 2
        assert nav.targets == []  # not before the delay
        await asyncio.sleep(0.35)
        return list(nav.targets), pol.pending

    targets, pending = asyncio.run(scenario())
    assert targets == ["/therapy-session"]
    assert pending == 0


def test_once_policy_latches():
    pol, ctx, nav = _policy("once")

    async def scenario():
        scheduled = [pol.on_detection("sad") for _ in range(5)]
        await asyncio.sleep(0.15)
        return scheduled

    assert asyncio.run(scenario()) == [False, True, False, False, False]
    assert ctx.get_sad_streak() == 5
    assert nav.targets == ["/therapy-session"]


def test_repeat_policy_reschedules_every_time():
    pol, ctx, nav = _policy("repeat")

    async def scenario():
        scheduled = [pol.on_detection("sad") for _ in range(4)]
        await asyncio.sleep(0.15)
        return scheduled

    assert asyncio.run(scenario()) == [False, True, True, True]
    assert nav.targets == ["/therapy-session"] * 3


def test_streak_survives_in_context():
    # counter lives in the shared context and is never reset
    pol, ctx, nav = _policy()
    ctx.set_sad_streak(1)

    async def scenario():
        return pol.on_detection("sad")

    assert asyncio.run(scenario()) is True


def test_cancel_pending():
    pol, ctx, nav = _policy(delay=0.1)

    async def scenario():
        pol.on_detection("sad"); pol.on_detection("sad")
        assert pol.pending == 1
        pol.cancel_pending()
        pol.cancel_pending()
        await asyncio.sleep(0.2)

    asyncio.run(scenario())
    assert nav.targets == []
