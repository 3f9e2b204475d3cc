# tests/transport/test_bus.py
"""
retro_core_6502.transport.busモジュールの単体テスト。
"""
import pytest

from retro_core_6502.transport.bus import (
    AbstractBus, Bus, BusAccessType, BusError, Device, RAM, ROM,
)

# @intent:test_suite メモリバス契約、参照実装のバス、デバイスの基本的な機能とエラーハンドリングを検証します。


class TestRAM:
    # @intent:test_case_init RAMクラスが正しいサイズと初期値で初期化されることを検証します。
    def test_ram_init_valid_size(self):
        ram = RAM(16)
        assert ram.get_size() == 16
        assert all(ram.read(i) == 0 for i in range(16))

    def test_ram_init_fill_value(self):
        ram = RAM(4, initial_value=0xEA)
        assert [ram.read(i) for i in range(4)] == [0xEA] * 4

    # @intent:test_case_init 無効なサイズでRAMを初期化するとValueErrorが発生することを検証します。
    def test_ram_init_invalid_size(self):
        with pytest.raises(ValueError, match="RAM size must be a positive integer."):
            RAM(0)
        with pytest.raises(ValueError, match="RAM size must be a positive integer."):
            RAM(-1)
        with pytest.raises(ValueError, match="RAM size must be a positive integer."):
            RAM(1.5)

    # @intent:test_case_oob 境界外アドレスへのアクセス時にIndexErrorが発生することを検証します。
    def test_ram_read_write_out_of_bounds(self):
        ram = RAM(4)
        with pytest.raises(IndexError, match="Address 4 out of bounds for RAM of size 4."):
            ram.read(4)
        with pytest.raises(IndexError, match="Address -1 out of bounds for RAM of size 4."):
            ram.write(-1, 0x00)

    # @intent:test_case_data 8bitを超過するデータの書き込みでValueErrorが発生することを検証します。
    def test_ram_write_invalid_data(self):
        ram = RAM(1)
        with pytest.raises(ValueError, match="Data 256 is not an 8-bit value."):
            ram.write(0, 0x100)


class TestROM:
    # @intent:test_case_rom 通常の書き込みは無視され、load_dataでのみ内容を設定できることを検証します。
    def test_rom_ignores_writes(self):
        rom = ROM(4)
        rom.write(0, 0x12)
        assert rom.read(0) == 0x00
        rom.load_data(0, 0x34)
        assert rom.read(0) == 0x34


class TestAbstractBus:
    # @intent:test_case_read_word read_wordがリトルエンディアンで合成し、$FFFFで16bitラップすることを検証します。
    def test_read_word_little_endian_and_wraps(self):
        class FlatBus(AbstractBus):
            def __init__(self):
                self.memory = bytearray(0x10000)

            def read(self, address):
                return self.memory[address]

            def write(self, address, data):
                self.memory[address] = data

        flat = FlatBus()
        flat.write(0x1234, 0xCD)
        flat.write(0x1235, 0xAB)
        assert flat.read_word(0x1234) == 0xABCD

        flat.write(0xFFFF, 0x22)
        flat.write(0x0000, 0x11)
        assert flat.read_word(0xFFFF) == 0x1122


class TestBus:
    # @intent:test_case_register デバイスがバスに正しく登録され、オフセット計算されることを検証します。
    def test_bus_register_and_access_device(self):
        bus = Bus()
        ram1 = RAM(16)
        ram2 = RAM(16)
        bus.register_device(0x0000, 0x000F, ram1)
        bus.register_device(0x0010, 0x001F, ram2)

        bus.write(0x0005, 0xAA)
        assert bus.read(0x0005) == 0xAA
        assert ram1.read(5) == 0xAA

        bus.write(0x001A, 0xBB)
        assert ram2.read(0x0A) == 0xBB

    # @intent:test_case_unmapped マップされていないアドレスへのアクセス時にBusErrorが発生することを検証します。
    def test_bus_access_unmapped_address(self):
        bus = Bus()
        bus.register_device(0x100, 0x10F, RAM(16))

        with pytest.raises(BusError, match="Address 0x0000 not mapped to any device."):
            bus.read(0x0000)
        with pytest.raises(IndexError):
            bus.write(0x0110, 0xCC)

    # @intent:test_case_open_bus open_bus_value指定時は未マップ読み出しがその値を返し、書き込みは破棄されることを検証します。
    def test_bus_open_bus_value(self):
        bus = Bus(open_bus_value=0xFF)
        bus.register_device(0x0000, 0x00FF, RAM(0x100))

        assert bus.read(0x8000) == 0xFF
        bus.write(0x8000, 0x12)
        assert bus.read(0x8000) == 0xFF

    def test_bus_open_bus_value_must_be_byte(self):
        with pytest.raises(ValueError):
            Bus(open_bus_value=0x100)

    # @intent:test_case_invalid_range 無効なアドレス範囲でValueErrorが発生することを検証します。
    def test_bus_register_invalid_address_range(self):
        bus = Bus()
        with pytest.raises(ValueError, match="Invalid address range"):
            bus.register_device(0x0010, 0x000F, RAM(16))
        with pytest.raises(ValueError, match="Invalid address range"):
            bus.register_device(0xFFFF, 0x1000F, RAM(16))

    # @intent:test_case_mismatch_size RAMデバイスのサイズが登録範囲と一致しない場合にValueErrorが発生することを検証します。
    def test_bus_register_ram_size_mismatch(self):
        bus = Bus()
        with pytest.raises(ValueError, match=r"Registered RAM device size \(10 bytes\) does not match"):
            bus.register_device(0x0000, 0x000F, RAM(10))

    def test_bus_register_invalid_device_type(self):
        bus = Bus()

        class NotADevice:
            pass

        with pytest.raises(TypeError, match="Device must be an instance of a class derived from Device."):
            bus.register_device(0x0000, 0x000F, NotADevice())

    # @intent:test_case_activity_log 読み書きが順に記録され、書き込みには直前の値が残ることを検証します。
    def test_bus_activity_log(self):
        bus = Bus()
        bus.register_device(0x0000, 0x00FF, RAM(0x100))
        bus.write(0x0010, 0x42)
        bus.write(0x0010, 0x43)
        bus.read(0x0010)

        log = bus.get_and_clear_activity_log()
        assert [a.access_type for a in log] == [BusAccessType.WRITE, BusAccessType.WRITE, BusAccessType.READ]
        assert log[1].previous_data == 0x42
        assert log[2].data == 0x43
        assert bus.get_and_clear_activity_log() == []

    # @intent:test_case_peek_load peekとloadはログに残らず、loadはROMにも書き込めることを検証します。
    def test_bus_peek_and_load_bypass_log(self):
        bus = Bus()
        bus.register_device(0x0000, 0x00FF, RAM(0x100))
        bus.register_device(0xFF00, 0xFFFF, ROM(0x100))

        bus.load_bytes(0xFFFC, bytes([0x00, 0x80]))
        assert bus.peek(0xFFFC) == 0x00
        assert bus.peek(0xFFFD) == 0x80
        assert bus.get_and_clear_activity_log() == []

        bus.write(0xFFFC, 0x12)
        assert bus.peek(0xFFFC) == 0x00

    def test_custom_device_receives_offsets(self):
        class Latch(Device):
            def __init__(self):
                self.written = []

            def read(self, address):
                return address

            def write(self, address, data):
                self.written.append((address, data))

        bus = Bus()
        latch = Latch()
        bus.register_device(0xD000, 0xD00F, latch)
        bus.write(0xD003, 0x7F)
        assert latch.written == [(3, 0x7F)]
        assert bus.read(0xD00A) == 0x0A
