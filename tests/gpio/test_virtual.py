"""Tests for the in-memory GPIO controller."""

import threading

import pytest

from d1flash.core.exceptions import PinAcquisitionError, PinClosedError
from d1flash.core.gpio_enums import LogicLevel, PinMode, PullMode
from d1flash.gpio.virtual import BCM_LINE_COUNT, LineState, VirtualGpioController


# ----------------- Fixtures -----------------

@pytest.fixture
def controller(fake_clock):
    return VirtualGpioController(
        num_lines=8,
        initial={3: LineState(mode=PinMode.OUTPUT, latch=LogicLevel.HIGH)},
        clock=fake_clock,
    )


# ----------------- Test Classes -----------------

class TestLineState:
    def test_output_reads_latch(self):
        assert LineState(mode=PinMode.OUTPUT, latch=LogicLevel.HIGH).level is LogicLevel.HIGH

    def test_input_follows_pull(self):
        assert LineState(pull=PullMode.UP).level is LogicLevel.HIGH
        assert LineState(pull=PullMode.DOWN, external=LogicLevel.HIGH).level is LogicLevel.LOW

    def test_floating_input_reads_external_level(self):
        assert LineState(external=LogicLevel.HIGH).level is LogicLevel.HIGH

    def test_input_ignores_latch(self):
        assert LineState(mode=PinMode.INPUT, latch=LogicLevel.HIGH).level is LogicLevel.LOW

    def test_alternate_reads_external_level(self):
        assert LineState(mode=PinMode.ALT0, latch=LogicLevel.HIGH).level is LogicLevel.LOW


class TestVirtualGpioControllerAcquisition:
    def test_default_line_count(self):
        assert VirtualGpioController().num_lines == BCM_LINE_COUNT

    def test_invalid_line_count(self):
        with pytest.raises(ValueError):
            VirtualGpioController(num_lines=0)

    def test_get_claims_line(self, controller):
        pin = controller.get(2)

        assert pin.number == 2
        assert controller.is_claimed(2)

    def test_get_twice_fails(self, controller):
        controller.get(2)

        with pytest.raises(PinAcquisitionError, match="already claimed"):
            controller.get(2)

    @pytest.mark.parametrize("pin", [-1, 8, 200])
    def test_get_out_of_range(self, controller, pin):
        with pytest.raises(PinAcquisitionError, match="out of range"):
            controller.get(pin)

    def test_get_after_close(self, controller):
        controller.close()

        with pytest.raises(PinAcquisitionError, match="closed"):
            controller.get(1)

    def test_line_snapshot_out_of_range(self, controller):
        with pytest.raises(ValueError):
            controller.line(8)

    def test_context_manager_closes(self):
        with VirtualGpioController(num_lines=2) as controller:
            controller.get(0)
        with pytest.raises(PinAcquisitionError):
            controller.get(1)


class TestVirtualPin:
    def test_reads_initial_state(self, controller):
        pin = controller.get(3)

        assert pin.mode() is PinMode.OUTPUT
        assert pin.read() is LogicLevel.HIGH

    def test_unlisted_lines_start_as_floating_inputs(self, controller):
        pin = controller.get(0)

        assert pin.mode() is PinMode.INPUT
        assert pin.read() is LogicLevel.LOW

    def test_write_on_input_is_latched(self, controller):
        pin = controller.get(0)
        pin.write(LogicLevel.HIGH)

        assert pin.read() is LogicLevel.LOW
        pin.set_mode(PinMode.OUTPUT)
        assert pin.read() is LogicLevel.HIGH

    def test_set_pull(self, controller):
        pin = controller.get(0)
        pin.set_pull(PullMode.UP)

        assert controller.line(0).pull is PullMode.UP
        assert pin.read() is LogicLevel.HIGH

    def test_release_restores_acquired_state_by_default(self, controller):
        pin = controller.get(3)
        pin.set_mode(PinMode.INPUT)
        pin.set_pull(PullMode.DOWN)
        pin.release()

        line = controller.line(3)
        assert (line.mode, line.latch, line.pull) == (PinMode.OUTPUT, LogicLevel.HIGH, PullMode.OFF)
        assert not controller.is_claimed(3)

    def test_release_without_reset_keeps_configuration(self, controller):
        pin = controller.get(3)
        pin.set_reset_on_release(False)
        pin.set_mode(PinMode.INPUT)
        pin.release()

        assert controller.line(3).mode is PinMode.INPUT

    def test_release_is_idempotent(self, controller):
        pin = controller.get(3)
        pin.set_mode(PinMode.INPUT)
        pin.release()
        events = len(controller.events(3))
        pin.release()

        assert len(controller.events(3)) == events

    def test_released_pin_rejects_operations(self, controller):
        pin = controller.get(1)
        pin.release()

        with pytest.raises(PinClosedError):
            pin.set_mode(PinMode.OUTPUT)
        with pytest.raises(PinClosedError):
            pin.read()

    def test_line_can_be_claimed_again_after_release(self, controller):
        controller.get(1).release()

        assert controller.get(1).number == 1


class TestVirtualGpioControllerEvents:
    def test_events_are_timestamped(self, controller, fake_clock):
        pin = controller.get(0)
        pin.set_mode(PinMode.OUTPUT)
        fake_clock.sleep(0.5)
        pin.write(LogicLevel.HIGH)

        times = [event.time for event in controller.events(0)]
        assert times == [100.0, 100.5]

    def test_no_event_without_electrical_change(self, controller):
        pin = controller.get(0)
        pin.write(LogicLevel.HIGH)  # latched only
        pin.set_mode(PinMode.INPUT)  # unchanged

        assert controller.events(0) == []

    def test_events_filter_by_pin(self, controller):
        controller.get(0).set_mode(PinMode.OUTPUT)
        controller.get(1).set_pull(PullMode.UP)

        assert [event.pin for event in controller.events()] == [0, 1]
        assert [event.pin for event in controller.events(1)] == [1]

    def test_concurrent_updates_are_all_recorded(self):
        controller = VirtualGpioController(num_lines=4)
        pins = [controller.get(n) for n in range(4)]

        def toggle(pin):
            for _ in range(50):
                pin.set_mode(PinMode.OUTPUT)
                pin.set_mode(PinMode.INPUT)

        threads = [threading.Thread(target=toggle, args=(pin,)) for pin in pins]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(controller.events()) == 4 * 100
