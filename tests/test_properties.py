"""
Behavioural properties of the interpreter: arithmetic flags over operand
ranges, XOR drawing, call/return nesting, termination and a full program.
"""
import numpy as np
import pytest

from chip8vm import Chip8CPU

SAMPLES = sorted(set(range(0, 256, 17)) | {1, 127, 128, 254, 255})


def _program(*words: int) -> bytes:
    return b"".join(w.to_bytes(2, "big") for w in words)


def _cpu(*words: int, **kwargs) -> Chip8CPU:
    return Chip8CPU(_program(*words), **kwargs)


class TestArithmeticProperties:
    def test_load_then_add_zero_preserves(self):
        cpu = _cpu()
        for kk in range(256):
            cpu.execute(0x6300 | kk)
            cpu.execute(0x7300)
            assert cpu.state.V[3] == kk

    @pytest.mark.parametrize("a", SAMPLES)
    def test_carry(self, a):
        cpu = _cpu()
        for b in SAMPLES:
            cpu.execute(0x6100 | a)
            cpu.execute(0x6200 | b)
            cpu.execute(0x8124)
            assert cpu.state.V[1] == (a + b) % 256
            assert cpu.state.V[0xF] == (1 if a + b > 255 else 0)

    @pytest.mark.parametrize("a", SAMPLES)
    def test_borrow(self, a):
        cpu = _cpu()
        for b in SAMPLES:
            cpu.execute(0x6100 | a)
            cpu.execute(0x6200 | b)
            cpu.execute(0x8125)
            assert cpu.state.V[1] == (a - b) % 256
            assert cpu.state.V[0xF] == (1 if a > b else 0)


class TestDrawProperties:
    @pytest.mark.parametrize("x,y", [(0, 0), (10, 5), (60, 30), (63, 31)])
    def test_double_draw_restores_display(self, x, y):
        cpu = _cpu()
        cpu.display[::3, ::5] = True
        before = cpu.state.framebuffer()

        cpu.state.V[0] = x
        cpu.state.V[1] = y
        cpu.execute(0xF829)  # V8 == 0 -> I at glyph "0"
        cpu.execute(0xD015)
        cpu.execute(0xD015)

        assert np.array_equal(cpu.display, before)
        assert cpu.state.V[0xF] == 1

    def test_horizontal_wraparound(self):
        cpu = _cpu()
        cpu.state.memory[0x300] = 0xFF
        cpu.state.I = 0x300
        cpu.state.V[0] = 60
        cpu.state.V[1] = 0
        cpu.execute(0xD011)

        row = cpu.display[0]
        assert row[60:64].all()
        assert row[0:4].all()
        assert not row[4:60].any()
        assert not cpu.display[1:].any()


class TestCallReturn:
    def test_nested_calls_return_after_call_site(self):
        cpu = _cpu(
            0x2206,  # 0x200: call A
            0x6A01,  # 0x202
            0x00EE,  # 0x204: end
            0x220C,  # 0x206: A calls B
            0x6B02,  # 0x208
            0x00EE,  # 0x20A
            0x6C03,  # 0x20C: B
            0x00EE,  # 0x20E
        )
        cpu.step()
        cpu.step()
        assert cpu.state.stack == [0x202, 0x208]
        cpu.step()
        cpu.step()
        assert cpu.state.PC == 0x208
        assert cpu.run(10) is False
        assert (cpu.state.V[0xA], cpu.state.V[0xB], cpu.state.V[0xC]) == (1, 2, 3)

    @pytest.mark.parametrize("capacity", [1, 16, 64])
    def test_recursion_to_capacity(self, capacity):
        # V0 counts down; each level calls itself until V0 hits zero
        cpu = _cpu(
            0x6000 | capacity,  # 0x200
            0x2206,             # 0x202: call recurse
            0x00EE,             # 0x204: end
            0x3000,             # 0x206: recurse: if V0 == 0 skip
            0x120C,             # 0x208:   goto descend
            0x00EE,             # 0x20A: return
            0x70FF,             # 0x20C: descend: V0 -= 1
            0x7101,             # 0x20E: V1 += 1
            0x2206,             # 0x210: call recurse
            0x00EE,             # 0x212
            stack_capacity=capacity + 1,
        )
        assert cpu.run(10000) is False
        assert cpu.state.V[1] == capacity
        assert cpu.state.stack == []


class TestTermination:
    def test_top_level_return_only_sets_terminate(self):
        cpu = _cpu()
        cpu.state.V[2] = 5
        cpu.state.I = 0x123
        cpu.state.delay_timer = 4
        before = (cpu.state.PC, cpu.state.I, cpu.state.registers_copy(),
                  cpu.state.memory_copy(), cpu.state.framebuffer(), cpu.state.delay_timer)

        cpu.execute(0x00EE)

        assert cpu.terminated
        after = (cpu.state.PC, cpu.state.I, cpu.state.registers_copy(),
                 cpu.state.memory_copy(), cpu.state.framebuffer(), cpu.state.delay_timer)
        assert before[:4] == after[:4]
        assert np.array_equal(before[4], after[4])
        assert before[5] == after[5]


class TestPrograms:
    def test_bcd_of_234(self):
        cpu = _cpu(0x65EA, 0xA300, 0xF533, 0x00EE)
        cpu.run(10)
        assert bytes(cpu.state.memory[0x300:0x303]) == bytes([2, 3, 4])

    def test_add_program_end_to_end(self):
        cpu = Chip8CPU(bytes([0x60, 0x05, 0x61, 0x03, 0x80, 0x14, 0x00, 0xEE]))
        assert cpu.run(100) is False
        assert cpu.state.V[0] == 8
        assert cpu.state.V[0xF] == 0
        assert cpu.terminated
