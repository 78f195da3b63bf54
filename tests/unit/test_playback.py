"""Unit tests for the playback state machine and its scheduler."""

import pytest

from atlanta_map.playback import PlaybackController, PlaybackState, PollingScheduler

pytestmark = pytest.mark.unit


@pytest.fixture
def scheduler(clock):
    return PollingScheduler(clock=clock)


@pytest.fixture
def controller(scheduler):
    return PlaybackController(scheduler)


def run_ticks(clock, scheduler, count, interval=1.0):
    for _ in range(count):
        clock.advance(interval)
        scheduler.poll()


class TestPollingScheduler:
    """Test the cooperative interval timer."""

    def test_fires_only_when_due(self, clock, scheduler):
        calls = []
        scheduler.every(1.0, lambda: calls.append(clock()))
        clock.advance(0.5)
        assert scheduler.poll() == 0
        clock.advance(0.5)
        assert scheduler.poll() == 1
        assert calls == [1.0]

    def test_missed_beats_are_dropped(self, clock, scheduler):
        calls = []
        scheduler.every(1.0, lambda: calls.append(clock()))
        clock.advance(5.0)
        scheduler.poll()
        assert calls == [5.0]
        clock.advance(1.0)
        scheduler.poll()
        assert calls == [5.0, 6.0]

    def test_cancelled_task_never_fires(self, clock, scheduler):
        calls = []
        task = scheduler.every(1.0, lambda: calls.append(1))
        task.cancel()
        task.cancel()
        clock.advance(3.0)
        scheduler.poll()
        assert calls == []
        assert task.cancelled
        assert scheduler.pending() == 0

    def test_rejects_non_positive_interval(self, scheduler):
        with pytest.raises(ValueError):
            scheduler.every(0, lambda: None)


class TestPlaybackController:
    """Test Play, Pause, tick and Scrub."""

    def test_initial_state(self, controller):
        assert controller.state is PlaybackState.STOPPED
        assert controller.active_year == 2024
        assert not controller.is_playing

    def test_play_wraps_and_cycles(self, clock, scheduler, controller):
        controller.play()
        run_ticks(clock, scheduler, 5)
        assert controller.history == [2024, 2016, 2017, 2018, 2019, 2020]
        assert controller.is_playing

    def test_cycles_indefinitely(self, clock, scheduler, controller):
        controller.play()
        run_ticks(clock, scheduler, 21)
        assert controller.active_year == 2018
        assert controller.history.count(2016) == 3

    def test_stopped_controller_does_not_advance(self, clock, scheduler, controller):
        run_ticks(clock, scheduler, 3)
        assert controller.history == [2024]

    def test_pause_stops_advancing(self, clock, scheduler, controller):
        controller.play()
        run_ticks(clock, scheduler, 2)
        controller.pause()
        run_ticks(clock, scheduler, 4)
        assert controller.active_year == 2017
        assert controller.state is PlaybackState.STOPPED
        assert scheduler.pending() == 0

    def test_scrub_then_play_resumes_from_scrubbed_year(self, clock, scheduler, controller):
        controller.scrub(2021)
        assert controller.state is PlaybackState.STOPPED
        controller.play()
        run_ticks(clock, scheduler, 2)
        assert controller.history == [2024, 2021, 2022, 2023]

    def test_scrub_while_playing_keeps_playing(self, clock, scheduler, controller):
        controller.play()
        controller.scrub(2018)
        assert controller.is_playing
        run_ticks(clock, scheduler, 1)
        assert controller.active_year == 2019

    @pytest.mark.parametrize("year", [2015, 2025])
    def test_scrub_outside_range_is_rejected(self, controller, year):
        with pytest.raises(ValueError):
            controller.scrub(year)
        assert controller.active_year == 2024

    def test_repeated_play_keeps_single_timer(self, clock, scheduler, controller):
        controller.play()
        controller.play()
        assert scheduler.pending() == 1
        run_ticks(clock, scheduler, 1)
        assert controller.history == [2024, 2016]

    def test_toggle(self, controller, scheduler):
        controller.toggle()
        assert controller.is_playing
        controller.toggle()
        assert not controller.is_playing
        assert scheduler.pending() == 0

    def test_listeners_receive_each_year(self, clock, scheduler, controller):
        seen = []
        unsubscribe = controller.subscribe(seen.append)
        controller.play()
        run_ticks(clock, scheduler, 2)
        controller.scrub(2020)
        unsubscribe()
        run_ticks(clock, scheduler, 1)
        assert seen == [2016, 2017, 2020]

    def test_close_cancels_timer_and_listeners(self, clock, scheduler, controller):
        seen = []
        controller.subscribe(seen.append)
        controller.play()
        controller.close()
        run_ticks(clock, scheduler, 3)
        assert seen == []
        assert scheduler.pending() == 0
        assert controller.state is PlaybackState.STOPPED

    def test_custom_interval(self, clock, scheduler):
        controller = PlaybackController(scheduler, initial_year=2016, interval=0.5)
        controller.play()
        run_ticks(clock, scheduler, 2, interval=0.5)
        assert controller.active_year == 2018

    def test_initial_year_must_be_in_range(self, scheduler):
        with pytest.raises(ValueError):
            PlaybackController(scheduler, initial_year=2030)
