# retro_core_6502/core/snapshot.py
"""
実行状態の不変スナップショット

このモジュールは、1命令の実行結果（CPU状態とバスアクティビティ）を記録した
不変のデータ構造を定義します。トレースやデバッグ時の状態記録に用いる責務を負います。
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional

from retro_core_6502.core.state import CpuState
from retro_core_6502.transport.bus import BusAccess


# @intent:responsibility 実行された命令の詳細を記録します。
@dataclass(frozen=True)
class Operation:
    """
    実行された命令の詳細（HEX、ニーモニック、オペランド）を記録するデータクラス。
    """
    opcode_hex: str  # 例: "A9"
    mnemonic: str  # 例: "LDA"
    operands: List[str] = field(default_factory=list)  # 例: ["#$10"]
    operand_bytes: List[int] = field(default_factory=list)
    cycle_count: int = 0  # この命令が消費したクロックサイクル数 (ペナルティ込み)
    length: int = 1  # 命令のバイト長
    # アーキテクチャ固有の実行コンテキスト (解決済みオペランドなど)。比較・表示の対象外。
    context: Any = field(default=None, compare=False, repr=False)


# @intent:responsibility 実行に関するメタデータを記録します。
@dataclass(frozen=True)
class Metadata:
    cycle_count: int  # 累計サイクル数
    symbol_info: Optional[str] = None  # 例: "LDA #$10"


# @intent:responsibility ある一時点におけるCPUとバスの状態を不変に記録します。
@dataclass(frozen=True)
class Snapshot:
    """
    1回のstep実行直後の、CPU状態のコピーとバスアクティビティの記録。
    """
    state: CpuState
    operation: Operation
    metadata: Metadata
    bus_activity: List[BusAccess] = field(default_factory=list)
