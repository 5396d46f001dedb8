"""
Unit Tests for PlayerControls

Tests for:
- enqueue_and_play start/queue/truncate paths
- Pause toggle and the long-pause auto-stop
- Skip, previous, jump (with rollback on engine failure) and shuffle
- Volume, seek and speed clamping
- Clearing queue and history
- Stop and teardown cascades

Uses a mocked AudioEngine and NowPlayingUI.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from newi_music_bot.application.services.player_controls import EnqueueOutcome, PlayerControls
from newi_music_bot.domain.shared.exceptions import (
    AudioEngineError,
    BusinessRuleViolationError,
    InvalidOperationError,
)


@pytest.fixture
def mock_ui():
    """Mock now-playing UI."""
    ui = MagicMock()
    ui.refresh = AsyncMock(return_value=True)
    ui.show_stopped = AsyncMock()
    ui.notify = AsyncMock()
    return ui


@pytest.fixture
def controls(fake_engine, mock_ui):
    return PlayerControls(engine=fake_engine, ui=mock_ui, default_volume=40, pause_auto_stop_s=0.01)


# =============================================================================
# enqueue_and_play
# =============================================================================


class TestEnqueueAndPlay:
    @pytest.mark.asyncio
    async def test_idle_session_starts_first_track(self, controls, fake_engine, idle_session, make_track):
        tracks = [make_track("A"), make_track("B"), make_track("C")]

        outcome = await controls.enqueue_and_play(idle_session, tracks)

        assert outcome == EnqueueOutcome(started=tracks[0], queued=2, dropped=0)
        fake_engine.play.assert_awaited_once_with(idle_session.guild_id, tracks[0])
        assert idle_session.current is tracks[0]
        assert idle_session.upcoming == tracks[1:]

    @pytest.mark.asyncio
    async def test_engine_failure_leaves_session_idle(self, controls, fake_engine, idle_session, make_track):
        fake_engine.play.side_effect = AudioEngineError("play")

        with pytest.raises(AudioEngineError):
            await controls.enqueue_and_play(idle_session, [make_track(), make_track()])

        assert idle_session.current is None
        assert idle_session.playing is False
        assert idle_session.upcoming == []

    @pytest.mark.asyncio
    async def test_single_track_while_playing_is_queued(self, controls, fake_engine, playing_session, make_track):
        outcome = await controls.enqueue_and_play(playing_session, [make_track("Queued")])

        assert outcome.started is None
        assert outcome.position == 3
        fake_engine.play.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_full_queue_raises(self, controls, make_session, make_track):
        session = make_session(max_queue_size=1)
        session.start(make_track())
        session.enqueue(make_track())

        with pytest.raises(BusinessRuleViolationError):
            await controls.enqueue_and_play(session, [make_track()])

    @pytest.mark.asyncio
    async def test_playlist_truncated(self, controls, make_session, make_track):
        session = make_session(max_queue_size=2)
        session.start(make_track())

        outcome = await controls.enqueue_and_play(session, [make_track() for _ in range(5)])

        assert outcome.queued == 2
        assert outcome.dropped == 3

    @pytest.mark.asyncio
    async def test_nothing_to_add(self, controls, idle_session):
        assert await controls.enqueue_and_play(idle_session, []) == EnqueueOutcome()


# =============================================================================
# Pause / resume
# =============================================================================


class TestTogglePlayPause:
    @pytest.mark.asyncio
    async def test_pause(self, fake_engine, mock_ui, playing_session):
        controls = PlayerControls(engine=fake_engine, ui=mock_ui, pause_auto_stop_s=60)
        fake_engine.get_position.return_value = 12_345

        assert await controls.toggle_play_pause(playing_session) is True

        fake_engine.pause.assert_awaited_once_with(playing_session.guild_id)
        assert playing_session.paused is True
        assert playing_session.paused_position_ms == 12_345
        assert playing_session.ui.pause_stop_task is not None
        playing_session.ui.cancel_pause_stop()

    @pytest.mark.asyncio
    async def test_resume_cancels_auto_stop(self, fake_engine, mock_ui, playing_session):
        controls = PlayerControls(engine=fake_engine, ui=mock_ui, pause_auto_stop_s=60)
        await controls.toggle_play_pause(playing_session)
        timer = playing_session.ui.pause_stop_task

        assert await controls.toggle_play_pause(playing_session) is False
        await asyncio.gather(timer, return_exceptions=True)

        fake_engine.resume.assert_awaited_once_with(playing_session.guild_id)
        assert timer.cancelled()
        assert playing_session.ui.pause_stop_task is None
        assert playing_session.paused is False

    @pytest.mark.asyncio
    async def test_stopped_session_does_nothing(self, controls, fake_engine, idle_session):
        assert await controls.toggle_play_pause(idle_session) is False
        fake_engine.pause.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_long_pause_stops_playback(self, controls, fake_engine, mock_ui, playing_session):
        await controls.toggle_play_pause(playing_session)

        await asyncio.wait_for(playing_session.ui.pause_stop_task, timeout=1)

        fake_engine.stop_playing.assert_awaited_once_with(playing_session.guild_id)
        mock_ui.show_stopped.assert_awaited_once_with(playing_session)
        assert playing_session.current is None

    @pytest.mark.asyncio
    async def test_auto_stop_skipped_when_resumed(self, controls, fake_engine, playing_session):
        await controls._stop_after_long_pause(playing_session)
        fake_engine.stop_playing.assert_not_awaited()


# =============================================================================
# Skip / previous / jump / shuffle
# =============================================================================


class TestNavigation:
    @pytest.mark.asyncio
    async def test_skip(self, controls, fake_engine, paused_session):
        assert await controls.perform_skip(paused_session) is True

        fake_engine.skip.assert_awaited_once_with(paused_session.guild_id)
        assert paused_session.paused is False

    @pytest.mark.asyncio
    async def test_skip_without_upcoming(self, controls, fake_engine, make_session, sample_track):
        session = make_session()
        session.start(sample_track)

        assert await controls.perform_skip(session) is False
        fake_engine.skip.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_previous(self, controls, fake_engine, playing_session):
        earlier = playing_session.history[-1]

        assert await controls.perform_previous(playing_session) is earlier
        fake_engine.play.assert_awaited_once_with(playing_session.guild_id, earlier)

    @pytest.mark.asyncio
    async def test_previous_without_history(self, controls, fake_engine, make_session, sample_track):
        session = make_session()
        session.start(sample_track)

        assert await controls.perform_previous(session) is None
        fake_engine.play.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_jump(self, controls, fake_engine, playing_session):
        target = await controls.jump(playing_session, 2)

        assert target.title == "Later"
        fake_engine.play.assert_awaited_once_with(playing_session.guild_id, target)

    @pytest.mark.asyncio
    async def test_jump_out_of_range(self, controls, fake_engine, playing_session):
        with pytest.raises(InvalidOperationError):
            await controls.jump(playing_session, 10)
        fake_engine.play.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_previous_engine_failure_restores_session(self, controls, fake_engine, playing_session):
        titles = [t.title for _, t in playing_session.merged_view()]
        fake_engine.play.side_effect = AudioEngineError("play", "node gone")

        with pytest.raises(AudioEngineError):
            await controls.perform_previous(playing_session)

        assert playing_session.current.title == "Now"
        assert len(playing_session.upcoming) == 2
        assert len(playing_session.history) == 1
        assert [t.title for _, t in playing_session.merged_view()] == titles

    @pytest.mark.asyncio
    async def test_previous_failure_keeps_pause_timer(self, controls, fake_engine, paused_session):
        timer = MagicMock()
        timer.done.return_value = False
        paused_session.ui.pause_stop_task = timer
        fake_engine.play.side_effect = AudioEngineError("play", "node gone")

        with pytest.raises(AudioEngineError):
            await controls.perform_previous(paused_session)

        assert paused_session.paused is True
        assert paused_session.display_position_ms == 42_000
        assert paused_session.ui.pause_stop_task is timer
        timer.cancel.assert_not_called()

    @pytest.mark.asyncio
    async def test_jump_engine_failure_restores_session(self, controls, fake_engine, playing_session):
        titles = [t.title for _, t in playing_session.merged_view()]
        fake_engine.play.side_effect = AudioEngineError("play", "node gone")

        with pytest.raises(AudioEngineError):
            await controls.jump(playing_session, 2)

        assert playing_session.current.title == "Now"
        assert [t.title for _, t in playing_session.merged_view()] == titles

    def test_shuffle(self, controls, playing_session):
        assert controls.shuffle(playing_session) is True

    def test_shuffle_needs_two_tracks(self, controls, make_session, sample_track):
        session = make_session()
        session.enqueue(sample_track)
        assert controls.shuffle(session) is False


# =============================================================================
# Volume / seek / speed
# =============================================================================


class TestVolumeAndSeek:
    @pytest.mark.asyncio
    async def test_volume_clamped(self, controls, fake_engine, playing_session):
        assert await controls.set_volume(playing_session, 150) == 100
        fake_engine.set_volume.assert_awaited_once_with(playing_session.guild_id, 100)
        assert playing_session.volume == 100

    @pytest.mark.asyncio
    async def test_seek_clamped_to_duration(self, controls, fake_engine, playing_session):
        assert await controls.seek(playing_session, 999_999) == 180_000
        fake_engine.seek.assert_awaited_once_with(playing_session.guild_id, 180_000)

    @pytest.mark.asyncio
    async def test_seek_while_paused_moves_paused_position(self, controls, paused_session):
        await controls.seek(paused_session, 10_000)
        assert paused_session.display_position_ms == 10_000

    @pytest.mark.asyncio
    async def test_seek_when_stopped(self, controls, fake_engine, idle_session):
        assert await controls.seek(idle_session, 5000) == 0
        fake_engine.seek.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_speed_applied(self, controls, fake_engine, playing_session):
        assert await controls.set_speed(playing_session, 1.25) == 1.25
        fake_engine.set_speed.assert_awaited_once_with(playing_session.guild_id, 1.25)
        assert playing_session.speed == 1.25

    @pytest.mark.parametrize(("requested", "applied"), [(0.01, 0.25), (9.0, 3.0)])
    @pytest.mark.asyncio
    async def test_speed_clamped(self, controls, fake_engine, playing_session, requested, applied):
        assert await controls.set_speed(playing_session, requested) == applied

    @pytest.mark.asyncio
    async def test_speed_failure_keeps_old_value(self, controls, fake_engine, playing_session):
        fake_engine.set_speed.side_effect = AudioEngineError("speed")

        with pytest.raises(AudioEngineError):
            await controls.set_speed(playing_session, 2.0)
        assert playing_session.speed == 1.0


# =============================================================================
# Clear
# =============================================================================


class TestClearQueue:
    def test_clear_keeps_current(self, controls, fake_engine, playing_session):
        current = playing_session.current

        assert controls.clear_queue(playing_session) == 3
        assert playing_session.current is current
        assert playing_session.upcoming == []
        assert playing_session.history == []
        fake_engine.stop_playing.assert_not_awaited()

    def test_clear_with_nothing_queued(self, controls, make_session, sample_track):
        session = make_session()
        session.start(sample_track)

        assert controls.clear_queue(session) == 0


# =============================================================================
# Stop / teardown
# =============================================================================


class TestPerformStop:
    @pytest.mark.asyncio
    async def test_stop_clears_and_resets(self, controls, fake_engine, mock_ui, playing_session):
        playing_session.volume = 90
        collector = MagicMock()
        playing_session.ui.collector = collector

        await controls.perform_stop(playing_session)

        assert playing_session.current is None
        assert playing_session.upcoming == []
        assert playing_session.history == []
        assert playing_session.volume == 40
        fake_engine.stop_playing.assert_awaited_once_with(playing_session.guild_id)
        fake_engine.set_volume.assert_awaited_once_with(playing_session.guild_id, 40)
        collector.stop.assert_called_once()
        mock_ui.show_stopped.assert_awaited_once_with(playing_session)

    @pytest.mark.asyncio
    async def test_stop_cancels_timers(self, controls, playing_session):
        state = playing_session.ui
        state.confirm_task = asyncio.create_task(asyncio.sleep(10))
        state.pending_refresh = asyncio.create_task(asyncio.sleep(10))
        tasks = [state.confirm_task, state.pending_refresh]

        await controls.perform_stop(playing_session)
        await asyncio.gather(*tasks, return_exceptions=True)

        assert all(t.cancelled() for t in tasks)
        assert state.confirming is False
        assert state.pending_refresh is None

    @pytest.mark.asyncio
    async def test_engine_errors_do_not_abort_stop(self, controls, fake_engine, mock_ui, playing_session):
        fake_engine.stop_playing.side_effect = AudioEngineError("stop")
        fake_engine.set_volume.side_effect = AudioEngineError("volume")

        await controls.perform_stop(playing_session)

        mock_ui.show_stopped.assert_awaited_once()
        assert playing_session.current is None

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, controls, mock_ui, playing_session):
        await controls.perform_stop(playing_session)
        await controls.perform_stop(playing_session)

        assert mock_ui.show_stopped.await_count == 2
        assert playing_session.is_active is False


class TestTeardown:
    @pytest.mark.asyncio
    async def test_teardown_leaves_voice(self, controls, fake_engine, playing_session):
        playing_session.ui.message = MagicMock()

        await controls.teardown(playing_session)

        fake_engine.disconnect.assert_awaited_once_with(playing_session.guild_id)
        fake_engine.destroy_player.assert_awaited_once_with(playing_session.guild_id)
        assert playing_session.connected is False
        assert playing_session.current is None
        assert playing_session.ui.message is None

    @pytest.mark.asyncio
    async def test_teardown_without_leaving_voice(self, controls, fake_engine, playing_session):
        await controls.teardown(playing_session, leave_voice=False)

        fake_engine.disconnect.assert_not_awaited()
        fake_engine.destroy_player.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_destroy_failure_is_logged(self, controls, fake_engine, playing_session):
        fake_engine.destroy_player.side_effect = AudioEngineError("destroy")

        await controls.teardown(playing_session)

        assert playing_session.connected is False
