"""Tests for the host-side machine: lifecycle, ticks and faults."""

import io

import pytest
from chipvm import (
    Machine, MachineConfig, MachineStatus, Quirks,
    StackOverflow, StackUnderflow, CorruptedFetch, TooLarge, Unreadable,
)
from chipvm.constants import FONT_DATA, STACK_SIZE
from chipvm.errors import error_from_code
from chipvm.logging import MachineLogger
from conftest import assemble


def counting_program(length=40):
    """V0 += 1, repeated."""
    return assemble(*([0x7001] * length))


class TestLifecycle:

    def test_new_machine_is_paused(self, machine):
        assert machine.status is MachineStatus.PAUSED
        assert machine.rom is None
        assert (machine.snapshot().memory[:len(FONT_DATA)] == FONT_DATA).all()

    def test_load_starts_running(self, machine):
        machine.load_rom(counting_program())

        assert machine.status is MachineStatus.RUNNING
        assert machine.rom == "<bytes>"
        assert machine.snapshot().pc == 0x200

    def test_load_from_file(self, machine, tmp_path):
        path = tmp_path / "count.ch8"
        path.write_bytes(counting_program())

        machine.load_rom(path)

        assert machine.rom == str(path)

    def test_failed_load_leaves_machine_untouched(self, machine):
        machine.load_rom(counting_program())
        machine.tick()
        before = machine.snapshot()

        with pytest.raises(TooLarge):
            machine.load_rom(bytes(4000))

        after = machine.snapshot()
        assert (after.memory == before.memory).all()
        assert after.pc == before.pc
        assert machine.status is MachineStatus.RUNNING

    def test_unreadable_rom(self, machine, tmp_path):
        with pytest.raises(Unreadable):
            machine.load_rom(tmp_path / "missing.ch8")
        assert machine.status is MachineStatus.PAUSED

    def test_reload_restarts_program(self, machine):
        machine.load_rom(counting_program())
        machine.tick()

        machine.reload()

        snapshot = machine.snapshot()
        assert snapshot.pc == 0x200
        assert machine.status is MachineStatus.RUNNING

    def test_reload_without_rom(self, machine):
        with pytest.raises(RuntimeError):
            machine.reload()

    def test_reset_pauses_and_clears_program(self, machine):
        machine.load_rom(counting_program())
        machine.tick()

        machine.reset()

        snapshot = machine.snapshot()
        assert machine.status is MachineStatus.PAUSED
        assert machine.ticks == 0
        assert (snapshot.memory[0x200:] == 0).all()
        assert (snapshot.V == 0).all()
        assert (snapshot.memory[:len(FONT_DATA)] == FONT_DATA).all()

    def test_pause_resume(self, machine):
        machine.load_rom(counting_program())

        machine.pause()
        assert machine.status is MachineStatus.PAUSED
        machine.resume()
        assert machine.status is MachineStatus.RUNNING
        machine.toggle_pause()
        assert machine.status is MachineStatus.PAUSED
        machine.toggle_pause()
        assert machine.status is MachineStatus.RUNNING

    def test_quit(self, machine):
        machine.load_rom(counting_program())

        machine.quit()
        snapshot = machine.tick()

        assert not machine.running
        assert snapshot.status is MachineStatus.QUIT
        assert snapshot.instructions_executed == 0
        machine.resume()
        assert machine.status is MachineStatus.QUIT

    def test_quit_is_final(self, machine):
        machine.quit()

        with pytest.raises(RuntimeError):
            machine.load_rom(assemble(0x1200))
        machine.reset()

        assert machine.status is MachineStatus.QUIT
        assert machine.rom is None


class TestScheduling:

    def test_tick_runs_instruction_budget(self, machine):
        machine.load_rom(counting_program())

        snapshot = machine.tick()

        assert machine.instructions_per_tick == 11
        assert snapshot.V[0] == 11
        assert snapshot.pc == 0x200 + 2 * 11
        assert snapshot.instructions_executed == 11

    def test_budget_follows_clock_rate(self, quiet_logger):
        machine = Machine(MachineConfig(clock_rate=120, timer_rate=60), logger=quiet_logger)
        machine.load_rom(counting_program())

        snapshot = machine.tick()

        assert snapshot.V[0] == 2

    def test_timers_decrement_once_per_tick(self, machine):
        # delay = 5, sound = 1, then spin
        machine.load_rom(assemble(0x6005, 0xF015, 0x6101, 0xF118, 0x1208))

        snapshot = machine.tick()
        assert snapshot.delay_timer == 4
        assert snapshot.sound_timer == 0

        snapshot = machine.tick()
        assert snapshot.delay_timer == 3
        assert snapshot.sound_timer == 0

    def test_timers_stop_at_zero(self, machine):
        machine.load_rom(assemble(0x6002, 0xF015, 0x1204))

        for _ in range(5):
            snapshot = machine.tick()

        assert snapshot.delay_timer == 0

    def test_paused_tick_executes_nothing(self, machine):
        machine.load_rom(assemble(0x6005, 0xF015, *([0x7001] * 20)))
        machine.tick()
        machine.pause()
        before = machine.snapshot()

        snapshot = machine.tick()

        assert snapshot.instructions_executed == before.instructions_executed
        assert snapshot.pc == before.pc
        assert snapshot.delay_timer == before.delay_timer

    def test_paused_tick_merges_input(self, machine):
        machine.input.press(5)

        snapshot = machine.tick()

        assert snapshot.keypad[5]
        assert snapshot.keypad.sum() == 1

    def test_step_runs_one_instruction_and_pauses(self, machine):
        machine.load_rom(counting_program())

        snapshot = machine.step()

        assert machine.status is MachineStatus.PAUSED
        assert snapshot.instructions_executed == 1
        assert snapshot.pc == 0x202
        assert snapshot.last_opcode == 0x7001

        snapshot = machine.step()
        assert snapshot.V[0] == 2

    def test_run_calls_on_tick(self, machine):
        machine.load_rom(counting_program(100))
        seen = []

        snapshot = machine.run(3, on_tick=seen.append)

        assert len(seen) == 3
        assert snapshot.V[0] == 33
        assert machine.ticks == 3

    def test_run_stops_after_quit(self, machine):
        machine.load_rom(counting_program(100))

        machine.run(10, on_tick=lambda snapshot: machine.quit())

        assert machine.snapshot().instructions_executed == 11


class TestKeyWait:

    def test_wait_blocks_across_ticks_until_key(self, machine):
        # V3 = key, V5 = 1, spin
        machine.load_rom(assemble(0xF30A, 0x6501, 0x1204))

        for _ in range(3):
            snapshot = machine.tick()
            assert snapshot.waiting_for_key
            assert snapshot.pc == 0x202
            assert snapshot.V[5] == 0

        machine.input.press(0xB)
        snapshot = machine.tick()

        assert not snapshot.waiting_for_key
        assert snapshot.V[3] == 0xB
        assert snapshot.V[5] == 1

    def test_keys_from_keyboard_layout(self, machine):
        machine.load_rom(assemble(0xF30A, 0x1202))
        machine.tick()

        machine.input.press_char("w")  # key 5
        snapshot = machine.tick()

        assert snapshot.V[3] == 5


class TestFaults:

    def test_stack_overflow(self, machine):
        # recursive call to 0x200
        machine.load_rom(assemble(0x2200))

        with pytest.raises(StackOverflow):
            machine.run(5)

        snapshot = machine.snapshot()
        assert machine.status is MachineStatus.FAULTED
        assert snapshot.stack_depth == STACK_SIZE
        assert list(snapshot.stack) == [0x202] * STACK_SIZE
        assert snapshot.instructions_executed == STACK_SIZE

    def test_faulted_machine_does_not_run(self, machine):
        machine.load_rom(assemble(0x2200))
        with pytest.raises(StackOverflow):
            machine.run(5)

        snapshot = machine.tick()
        assert snapshot.instructions_executed == STACK_SIZE
        snapshot = machine.step()
        assert snapshot.instructions_executed == STACK_SIZE

    def test_stack_underflow(self, machine):
        machine.load_rom(assemble(0x00EE))

        with pytest.raises(StackUnderflow) as excinfo:
            machine.tick()

        assert excinfo.value.pc == 0x202
        assert machine.status is MachineStatus.FAULTED

    def test_corrupted_fetch(self, machine):
        machine.load_rom(assemble(0x1FFF))

        with pytest.raises(CorruptedFetch) as excinfo:
            machine.tick()

        assert excinfo.value.pc == 0xFFF

    def test_resume_clears_fault(self, machine):
        # return with empty stack, then count
        machine.load_rom(assemble(0x00EE, *([0x7001] * 30)))
        with pytest.raises(StackUnderflow):
            machine.tick()

        machine.resume()
        snapshot = machine.tick()

        assert snapshot.error == 0
        assert snapshot.V[0] == 11

    def test_error_without_pc(self):
        error = error_from_code(StackOverflow.code)

        assert isinstance(error, StackOverflow)
        assert error.pc is None
        assert "PC=" not in str(error)

    def test_unknown_opcodes_do_not_fault(self, machine):
        machine.load_rom(assemble(*([0x5121] * 20)))

        snapshot = machine.tick()

        assert machine.status is MachineStatus.RUNNING
        assert snapshot.unknown_opcodes == 11


class TestSnapshot:

    def test_snapshot_contents(self, machine):
        # call 0x206, I = 0x123, V2 = 0x42
        machine.load_rom(assemble(0x2206, 0x0000, 0x0000, 0xA123, 0x6242, 0x120A))

        snapshot = machine.step()
        snapshot = machine.step()
        snapshot = machine.step()

        assert snapshot.I == 0x123
        assert snapshot.V[2] == 0x42
        assert snapshot.stack_depth == 1
        assert list(snapshot.stack) == [0x202]
        assert snapshot.last_opcode == 0x6242
        assert snapshot.last_instruction == "LD V2, 0x42"
        assert snapshot.status is MachineStatus.PAUSED
        assert snapshot.display.shape == (32, 64)

    def test_snapshot_is_a_copy(self, machine):
        machine.load_rom(counting_program())
        snapshot = machine.snapshot()

        machine.tick()

        assert snapshot.V[0] == 0
        assert snapshot.pc == 0x200

    def test_quirks_reach_the_engine(self, quiet_logger):
        config = MachineConfig(quirks=Quirks(jump_uses_vx=True))
        machine = Machine(config, logger=quiet_logger)
        # V2 = 0x10, jump to 0x230 + V2
        machine.load_rom(assemble(0x6210, 0xB230))

        machine.step()
        snapshot = machine.step()

        assert snapshot.pc == 0x240
        assert snapshot.last_instruction == "JP V2, 0x230"

    def test_configured_display_size(self, quiet_logger):
        machine = Machine(MachineConfig(display_width=128, display_height=64), logger=quiet_logger)
        assert machine.snapshot().display.shape == (64, 128)


class TestLogging:

    def test_lifecycle_is_logged(self):
        stream = io.StringIO()
        logger = MachineLogger(stream=stream, show_timestamps=False)
        machine = Machine(logger=logger)

        machine.load_rom(assemble(0x00EE))
        with pytest.raises(StackUnderflow):
            machine.tick()

        output = stream.getvalue()
        assert "Loaded ROM <bytes> (2 bytes)" in output
        assert "return with an empty stack" in output

    def test_level_filtering(self):
        stream = io.StringIO()
        logger = MachineLogger(stream=stream, log_level="WARNING")

        logger.info("hidden")
        logger.warning("shown")

        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            MachineLogger(log_level="VERBOSE")
