# retro_core_6502/config/models.py
"""
システム構成 (YAML) のデータモデル。
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class MemoryRegion:
    start: int
    end: int
    type: str = "RAM"  # "RAM", "ROM"
    label: str = ""
    initial_value: int = 0x00

    @property
    def size(self) -> int:
        return self.end - self.start + 1


@dataclass
class CpuInitialState:
    use_reset_vector: bool = True  # Falseの場合、pc/sp/registersを直接設定する
    pc: int = 0x0000
    sp: int = 0xFD
    registers: Dict[str, int] = field(default_factory=dict)  # a, x, y, p


@dataclass
class SystemConfig:
    architecture: str = "MOS6502"  # "MOS6502", "2A03"
    memory_map: List[MemoryRegion] = field(default_factory=list)
    open_bus_value: Optional[int] = None
    initial_state: CpuInitialState = field(default_factory=CpuInitialState)
