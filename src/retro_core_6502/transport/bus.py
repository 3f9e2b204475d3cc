# retro_core_6502/transport/bus.py
"""
Transport Layer (共通バス)

このモジュールは、CPUコアが利用する64KiBのメモリアドレス空間の契約と、
アドレス範囲をデバイスへ委譲する参照実装のバスを提供します。
CPUコアはメモリを一切保持せず、全てのメモリアクセスはこの層を経由します。
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

ADDRESS_MASK = 0xFFFF


# @intent:responsibility バスが応答できないアクセスを表す例外。
# @intent:rationale IndexErrorを継承し、従来の「範囲外アクセス」としても捕捉できるようにします。
class BusError(IndexError):
    """マップされていないアドレスへのアクセス時に送出されます。"""


# @intent:responsibility バスアクセスを記録するためのタイプを定義します。
class BusAccessType(Enum):
    READ = "READ"
    WRITE = "WRITE"


# @intent:responsibility 個々のバスアクセス操作を記録します。
@dataclass(frozen=True)
class BusAccess:
    """
    バス上で行われた単一のアクセス（読み込みまたは書き込み）を記録するデータクラス。
    書き込みの場合、previous_data に書き込み前の値を保持します。
    """
    address: int
    data: int
    access_type: BusAccessType
    previous_data: Optional[int] = None


# @intent:responsibility CPUコアが消費するメモリバスの契約を定義します。
# @intent:pre-condition 実装は同期的に応答し、無期限にブロックしてはなりません。
class AbstractBus(ABC):
    """
    ホストが実装し、CPUコアが呼び出すバイト単位の読み書きインターフェース。
    """

    @abstractmethod
    def read(self, address: int) -> int:
        """指定アドレスから8bit値を読み出します。"""

    @abstractmethod
    def write(self, address: int, data: int) -> None:
        """指定アドレスへ8bit値を書き込みます。"""

    # @intent:responsibility リトルエンディアンで16bit値を読み出します。
    # @intent:note 上位バイトのアドレスは16bitでラップアラウンドします ($FFFF -> $0000)。
    def read_word(self, address: int) -> int:
        lo = self.read(address & ADDRESS_MASK)
        hi = self.read((address + 1) & ADDRESS_MASK)
        return (hi << 8) | lo


# @intent:responsibility バスの抽象デバイスインターフェースを定義します。
class Device(ABC):
    """
    バスに接続されるデバイスの抽象基底クラス。
    アドレスはデバイス内でのオフセットとして扱われます。
    """
    @abstractmethod
    def read(self, address: int) -> int:
        pass

    @abstractmethod
    def write(self, address: int, data: int) -> None:
        pass


# @intent:responsibility バイト配列で構成される読み書き可能なメモリデバイス。
class RAM(Device):
    """
    アドレス範囲全体をbytearrayで保持するRAMデバイス。
    initial_value で電源投入時の内容 (全バイト同値) を指定できます。
    """
    # @intent:pre-condition sizeは正の整数、initial_valueは8bit値であること。
    def __init__(self, size: int, initial_value: int = 0x00):
        if not isinstance(size, int) or size <= 0:
            raise ValueError("RAM size must be a positive integer.")
        if not 0 <= initial_value <= 0xFF:
            raise ValueError(f"Initial value {initial_value} is not an 8-bit value.")
        self._memory = bytearray([initial_value]) * size
        self._size = size

    def _check_offset(self, address: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(
                f"Address {address} out of bounds for {type(self).__name__} of size {self._size}."
            )

    def read(self, address: int) -> int:
        self._check_offset(address)
        return self._memory[address]

    def write(self, address: int, data: int) -> None:
        self._check_offset(address)
        if not 0 <= data <= 0xFF:
            raise ValueError(f"Data {data} is not an 8-bit value.")
        self._memory[address] = data

    def get_size(self) -> int:
        return self._size


# @intent:responsibility 書き込みを受け付けないメモリデバイス (リセットベクタやプログラムの格納先)。
class ROM(RAM):
    """
    CPUからの書き込みは黙って破棄されます。内容の設定には load_data (Bus.load) を使用します。
    """
    def write(self, address: int, data: int) -> None:
        self._check_offset(address)

    # @intent:responsibility ホストが内容を書き込むための経路です。
    def load_data(self, address: int, data: int) -> None:
        super().write(address, data)


# @intent:responsibility メモリアドレス空間を管理し、デバイスへのアクセスをディスパッチする参照実装のバス。
# @intent:rationale 全アクセスを記録することで、トレース(Snapshot)からメモリ副作用を観測できるようにします。
class Bus(AbstractBus):
    """
    メモリアドレス空間を管理し、デバイスへのアクセスをディスパッチする共通バス。

    open_bus_value を指定すると、未マップ領域の読み出しはその値を返し、
    書き込みは破棄されます。指定しない場合は BusError を送出します。
    """
    def __init__(self, open_bus_value: Optional[int] = None):
        if open_bus_value is not None and not 0 <= open_bus_value <= 0xFF:
            raise ValueError(f"Open bus value {open_bus_value} is not an 8-bit value.")
        # メモリマップ: (start_address, end_address, device) のタプルリスト
        self._memory_map: List[Tuple[int, int, Device]] = []
        self._bus_activity_log: List[BusAccess] = []
        self._open_bus_value = open_bus_value

    def _log_access(self, address: int, data: int, access_type: BusAccessType,
                    previous_data: Optional[int] = None) -> None:
        self._bus_activity_log.append(
            BusAccess(address=address, data=data, access_type=access_type, previous_data=previous_data)
        )

    # @intent:responsibility 記録されたバスアクティビティログを取得し、クリアします。
    def get_and_clear_activity_log(self) -> List[BusAccess]:
        log = self._bus_activity_log
        self._bus_activity_log = []
        return log

    # @intent:responsibility 指定されたアドレス範囲にデバイスを登録します。
    # @intent:rationale アドレス範囲の重複チェックは行いません。先に登録されたデバイスが優先されます。
    def register_device(self, start_address: int, end_address: int, device: Device) -> None:
        if not (0 <= start_address <= end_address <= ADDRESS_MASK):
            raise ValueError("Invalid address range: start_address must be <= end_address and within $0000-$FFFF.")
        if not isinstance(device, Device):
            raise TypeError("Device must be an instance of a class derived from Device.")

        if isinstance(device, RAM):
            expected_size = end_address - start_address + 1
            if device.get_size() != expected_size:
                raise ValueError(
                    f"Registered {type(device).__name__} device size ({device.get_size()} bytes) does not match "
                    f"the specified address range size ({expected_size} bytes)."
                )

        self._memory_map.append((start_address, end_address, device))

    # @intent:post-condition デバイスが見つからなかった場合はNoneを返します。
    def _find_device(self, address: int) -> Optional[Tuple[Device, int]]:
        for start, end, device in self._memory_map:
            if start <= address <= end:
                return device, address - start
        return None

    def _unmapped(self, address: int) -> BusError:
        return BusError(f"Address {address:#06x} not mapped to any device.")

    def read(self, address: int) -> int:
        """
        指定されたアドレスから8bitのデータを読み出します。
        アクセスはログに記録されます。
        """
        data = self.peek(address)
        self._log_access(address, data, BusAccessType.READ)
        return data

    # @intent:responsibility ログを記録せずに指定されたアドレスからデータを読み出します。
    def peek(self, address: int) -> int:
        found = self._find_device(address)
        if found is None:
            if self._open_bus_value is None:
                raise self._unmapped(address)
            logger.debug("Open bus read at $%04X -> $%02X", address, self._open_bus_value)
            return self._open_bus_value
        device, offset = found
        return device.read(offset)

    def write(self, address: int, data: int) -> None:
        """
        指定されたアドレスに8bitのデータを書き込みます。
        ROMへの書き込みはROMデバイスの実装により無視されます。
        """
        found = self._find_device(address)
        if found is None:
            if self._open_bus_value is None:
                raise self._unmapped(address)
            logger.debug("Open bus write at $%04X <- $%02X dropped", address, data)
            self._log_access(address, data, BusAccessType.WRITE)
            return
        device, offset = found
        previous = device.read(offset)
        device.write(offset, data)
        self._log_access(address, data, BusAccessType.WRITE, previous_data=previous)

    # @intent:responsibility ホスト側の初期化用に、ROMを含む任意のデバイスへログなしで書き込みます。
    def load(self, address: int, data: int) -> None:
        found = self._find_device(address)
        if found is None:
            raise self._unmapped(address)
        device, offset = found
        if isinstance(device, ROM):
            device.load_data(offset, data)
        else:
            device.write(offset, data)

    # @intent:responsibility 連続したバイト列をロードします。
    def load_bytes(self, address: int, data: bytes) -> None:
        for i, byte in enumerate(data):
            self.load((address + i) & ADDRESS_MASK, byte)
