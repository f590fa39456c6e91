"""Tests for the fetch/execute/tick cycle and ROM loading."""

import jax.numpy as jnp
import pytest
from chip8vm import (
    create_state, fetch, step, run_cycles, tick_timers, load_rom, load_rom_bytes,
    Fault, RomTooLarge, MAX_ROM_SIZE, MEMORY_SIZE, PROGRAM_START, FONT_START, STACK_SIZE,
)
from chip8vm.constants import FONT_DATA
from conftest import assemble, set_registers


def _at(state, pc):
    return state.replace(pc=jnp.asarray(pc, dtype=jnp.uint16))


class TestInitialState:
    def test_font_copied(self, fresh_state):
        font = [int(b) for b in fresh_state.memory[FONT_START:FONT_START + len(FONT_DATA)]]
        assert font == FONT_DATA

    def test_rest_of_memory_zeroed(self, fresh_state):
        assert int(jnp.sum(fresh_state.memory[PROGRAM_START:])) == 0
        assert int(jnp.sum(fresh_state.memory[:FONT_START])) == 0

    def test_registers_and_pc(self, fresh_state):
        assert fresh_state.pc == PROGRAM_START
        assert int(jnp.sum(fresh_state.V)) == 0
        assert fresh_state.I == 0
        assert fresh_state.stack.pointer == 0
        assert not fresh_state.draw_flag
        assert fresh_state.fault == Fault.NONE


class TestFetch:
    def test_fetch_big_endian(self, fresh_state):
        state = load_rom_bytes(fresh_state, assemble(0x6A42))

        state, instruction = fetch(state)

        assert instruction == 0x6A42
        assert state.pc == PROGRAM_START + 2
        assert state.opcode == 0x6A42

    def test_fetch_last_full_word(self, fresh_state):
        state = fresh_state.replace(memory=fresh_state.memory.at[0xFFE].set(0x12).at[0xFFF].set(0x34))
        state, instruction = fetch(_at(state, 0xFFE))
        assert instruction == 0x1234
        assert state.fault == Fault.NONE

    def test_fetch_past_memory_end(self, fresh_state):
        state, _ = fetch(_at(fresh_state, MEMORY_SIZE - 1))
        assert state.fault == Fault.FETCH_OUT_OF_RANGE
        assert state.pc == MEMORY_SIZE - 1


class TestStep:
    def test_step_executes_one_instruction(self, fresh_state):
        state = load_rom_bytes(fresh_state, assemble(0x6005, 0x6106))

        state = step(state)

        assert state.V[0] == 5
        assert state.V[1] == 0
        assert state.pc == PROGRAM_START + 2

    def test_timers_tick_once_per_cycle(self, fresh_state):
        state = load_rom_bytes(fresh_state, assemble(0x6003, 0xF015, 0xF018, 0x1206))

        state = step(step(state))  # DT = 3, set during the second cycle then ticked
        assert state.delay_timer == 2

        state = step(state)  # ST = 3, then ticked; DT ticks again
        assert state.delay_timer == 1
        assert state.sound_timer == 2

        for _ in range(5):
            state = step(state)
        assert state.delay_timer == 0
        assert state.sound_timer == 0

    def test_tick_timers_floor_at_zero(self, fresh_state):
        state = tick_timers(fresh_state.replace(delay_timer=jnp.asarray(1, dtype=jnp.uint8)))
        assert state.delay_timer == 0
        state = tick_timers(state)
        assert state.delay_timer == 0
        assert state.sound_timer == 0

    def test_fault_reset_each_cycle(self, fresh_state):
        state = load_rom_bytes(fresh_state, assemble(0x0123, 0x6001))

        state = step(state)
        assert state.fault == Fault.UNKNOWN_OPCODE

        state = step(state)
        assert state.fault == Fault.NONE

    def test_recovered_fault_still_ticks(self, fresh_state):
        state = load_rom_bytes(fresh_state, assemble(0x0123))
        state = state.replace(delay_timer=jnp.asarray(5, dtype=jnp.uint8))

        state = step(state)

        assert state.fault == Fault.UNKNOWN_OPCODE
        assert state.delay_timer == 4
        assert state.pc == PROGRAM_START + 2

    def test_fatal_fault_skips_tick(self, fresh_state):
        state = load_rom_bytes(fresh_state, assemble(0x00EE))
        state = state.replace(delay_timer=jnp.asarray(5, dtype=jnp.uint8))

        state = step(state)

        assert state.fault == Fault.STACK_UNDERFLOW
        assert state.delay_timer == 5
        assert state.pc == PROGRAM_START + 2

    def test_fetch_fault_changes_nothing(self, fresh_state):
        state = _at(fresh_state, MEMORY_SIZE - 1).replace(sound_timer=jnp.asarray(2, dtype=jnp.uint8))

        result = step(state)

        assert result.fault == Fault.FETCH_OUT_OF_RANGE
        assert result.pc == state.pc
        assert result.sound_timer == 2

    def test_call_then_return_resumes_after_call(self, fresh_state):
        # 0x200: CALL 0x206; 0x202: LD V1, 1; 0x204: JP 0x204; 0x206: RET
        state = load_rom_bytes(fresh_state, assemble(0x2206, 0x6101, 0x1204, 0x00EE))

        state = step(state)
        assert state.pc == 0x206
        state = step(state)
        assert state.pc == 0x202
        state = step(state)
        assert state.V[1] == 1

    def test_seventeen_nested_calls(self, fresh_state):
        # CALL to itself, forever deeper
        state = load_rom_bytes(fresh_state, assemble(0x2200))
        for _ in range(STACK_SIZE):
            state = step(state)
            assert state.fault == Fault.NONE

        state = step(state)

        assert state.fault == Fault.STACK_OVERFLOW

    def test_wait_for_key_across_cycles(self, fresh_state):
        state = load_rom_bytes(fresh_state, assemble(0xF50A, 0x6001))

        for _ in range(3):
            state = step(state)
            assert state.pc == PROGRAM_START

        state = state.replace(keypad=state.keypad.at[0xB].set(True).at[0xE].set(True))
        state = step(state)

        assert state.V[5] == 0xB
        assert state.pc == PROGRAM_START + 2

    def test_timers_run_while_waiting_for_key(self, fresh_state):
        state = load_rom_bytes(fresh_state, assemble(0xF00A))
        state = state.replace(delay_timer=jnp.asarray(3, dtype=jnp.uint8))

        state = step(step(state))

        assert state.delay_timer == 1


class TestRunCycles:
    def test_run_cycles_matches_step(self, fresh_state):
        rom = assemble(0x6001, 0x7002, 0x8014, 0xA300, 0xF033, 0x120A)
        state = load_rom_bytes(fresh_state, rom)

        expected = state
        for _ in range(8):
            expected = step(expected)
        result, faults = run_cycles(state, 8)

        assert (result.V == expected.V).all()
        assert (result.memory == expected.memory).all()
        assert result.pc == expected.pc
        assert faults.shape == (8,)
        assert int(jnp.sum(faults)) == 0

    def test_run_cycles_reports_faults(self, fresh_state):
        state = load_rom_bytes(fresh_state, assemble(0x6001, 0x00EE, 0xF0FF))

        _, faults = run_cycles(state, 3)

        assert [int(f) for f in faults] == [Fault.NONE, Fault.STACK_UNDERFLOW, Fault.UNKNOWN_OPCODE]


class TestLoadRom:
    def test_load_rom_bytes(self, fresh_state):
        state = load_rom_bytes(fresh_state, b"\x12\x34\x56")

        assert [int(b) for b in state.memory[PROGRAM_START:PROGRAM_START + 4]] == [0x12, 0x34, 0x56, 0]
        assert state.rom_size == 3

    def test_max_size_rom(self, fresh_state):
        state = load_rom_bytes(fresh_state, bytes([0xAB]) * (MEMORY_SIZE - 512))
        assert state.rom_size == MAX_ROM_SIZE
        assert state.memory[MEMORY_SIZE - 1] == 0xAB

    def test_rom_too_large(self, fresh_state):
        with pytest.raises(RomTooLarge):
            load_rom_bytes(fresh_state, bytes(MEMORY_SIZE - 512 + 1))

    def test_reload_keeps_registers(self, fresh_state):
        state = set_registers(fresh_state, V3=0x33)
        state = load_rom_bytes(state, assemble(0x00E0))
        state = step(state)

        state = load_rom_bytes(state, assemble(0x6001))

        assert state.V[3] == 0x33
        assert state.pc == PROGRAM_START + 2

    def test_load_rom_file(self, fresh_state, tmp_path):
        rom_file = tmp_path / "test.ch8"
        rom_file.write_bytes(assemble(0x6007, 0x1202))

        state = step(load_rom(fresh_state, str(rom_file)))

        assert state.V[0] == 7
        assert state.rom_size == 4

    def test_load_missing_rom(self, fresh_state, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_rom(fresh_state, str(tmp_path / "missing.ch8"))

    def test_load_rom_file_too_large(self, fresh_state, tmp_path):
        rom_file = tmp_path / "big.ch8"
        rom_file.write_bytes(bytes(MAX_ROM_SIZE + 1))

        with pytest.raises(RomTooLarge):
            load_rom(fresh_state, str(rom_file))


def test_independent_machines():
    first = load_rom_bytes(create_state(), assemble(0x6001))
    second = load_rom_bytes(create_state(), assemble(0x6002))

    first = step(first)

    assert first.V[0] == 1
    assert second.V[0] == 0
