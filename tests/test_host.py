"""
Tests for the pygame reference host, run headless on SDL's dummy drivers.
"""
import pytest

pygame = pytest.importorskip("pygame")

from chip8vm import Chip8CPU, ProgramTooLargeError  # noqa: E402
from chip8vm.host import KEY_MAP, Chip8Host, load_rom, main, render_display  # noqa: E402


def _program(*words: int) -> bytes:
    return b"".join(w.to_bytes(2, "big") for w in words)


def _key_event(kind, key):
    return pygame.event.Event(kind, key=key, mod=0, unicode="", scancode=0)


class TestKeypad:
    def test_key_map_covers_hex_keypad(self):
        assert sorted(KEY_MAP.values()) == list(range(16))

    def test_key_events_drive_cpu_keypad(self):
        cpu = Chip8CPU(b"")
        host = Chip8Host(cpu)
        host.handle_event(_key_event(pygame.KEYDOWN, pygame.K_q))
        assert cpu.keys[0x4]
        assert host.last_key == 0x4
        host.handle_event(_key_event(pygame.KEYUP, pygame.K_q))
        assert not cpu.keys[0x4]

    def test_escape_and_quit_stop(self):
        host = Chip8Host(Chip8CPU(b""))
        host.handle_event(_key_event(pygame.KEYDOWN, pygame.K_ESCAPE))
        assert not host.running
        host = Chip8Host(Chip8CPU(b""))
        host.handle_event(pygame.event.Event(pygame.QUIT))
        assert not host.running


class TestUpdate:
    def test_runs_until_termination(self):
        cpu = Chip8CPU(bytes([0x60, 0x05, 0x61, 0x03, 0x80, 0x14, 0x00, 0xEE]))
        host = Chip8Host(cpu)
        host.update()
        assert not host.running
        assert cpu.terminated
        assert cpu.state.V[0] == 8

    def test_ticks_timers_once_per_frame(self):
        cpu = Chip8CPU(_program(0x1200))
        cpu.state.delay_timer = 10
        host = Chip8Host(cpu, clock_hz=600)
        host.update()
        assert cpu.state.delay_timer == 9
        assert host.running

    def test_key_wait_satisfied_by_press(self):
        cpu = Chip8CPU(_program(0xF30A, 0x00EE))
        host = Chip8Host(cpu)
        host.update()
        assert cpu.waiting_for_key
        assert host.running

        host.handle_event(_key_event(pygame.KEYDOWN, pygame.K_v))
        host.update()
        assert cpu.state.V[3] == 0xF
        assert cpu.terminated
        assert not host.running

    def test_stale_press_does_not_satisfy_later_wait(self):
        cpu = Chip8CPU(_program(0x1200))
        host = Chip8Host(cpu)
        host.handle_event(_key_event(pygame.KEYDOWN, pygame.K_1))
        host.update()
        assert host.last_key is None


class TestRendering:
    def test_surface_size_and_colors(self):
        cpu = Chip8CPU(b"")
        cpu.display[0, 0] = True
        surf = render_display(cpu.display, scale=2, fg_color=(255, 0, 0), bg_color=(0, 0, 0))
        assert surf.get_size() == (128, 64)
        assert tuple(surf.get_at((0, 0)))[:3] == (255, 0, 0)
        assert tuple(surf.get_at((2, 0)))[:3] == (0, 0, 0)


class TestEntryPoint:
    def test_load_rom(self, tmp_path):
        rom = tmp_path / "game.ch8"
        rom.write_bytes(b"\x00\xEE")
        assert load_rom(rom) == b"\x00\xEE"

    def test_load_rom_too_large(self, tmp_path):
        rom = tmp_path / "huge.ch8"
        rom.write_bytes(bytes(4000))
        with pytest.raises(ProgramTooLargeError):
            load_rom(rom)

    def test_main_without_rom(self, capsys):
        assert main([]) == 2
        assert "usage" in capsys.readouterr().out

    def test_main_missing_rom(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.ch8")]) == 1
        assert "Failed to load ROM" in capsys.readouterr().out
