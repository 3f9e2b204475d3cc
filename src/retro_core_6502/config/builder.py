# retro_core_6502/config/builder.py
"""
SystemConfig から Bus と CPU を生成・接続します。
"""
import logging
from typing import Tuple

from retro_core_6502.transport.bus import Bus, RAM, ROM
from retro_core_6502.arch.mos6502.cpu import Mos6502Cpu
from retro_core_6502.arch.mos6502.state import Mos6502CpuState
from .loader import ConfigError
from .models import SystemConfig, CpuInitialState

logger = logging.getLogger(__name__)

# @intent:constant アーキテクチャ名と10進モード回路の有無。
ARCHITECTURES = {
    "MOS6502": True,
    "2A03": False,
}


# @intent:responsibility システム構成（Config）に基づいて、Bus、Device、CPUを生成・接続し、初期状態を適用します。
class SystemBuilder:
    def build_system(self, config: SystemConfig) -> Tuple[Mos6502Cpu, Bus]:
        if config.architecture not in ARCHITECTURES:
            raise ConfigError(f"Unsupported architecture: {config.architecture}")

        bus = Bus(open_bus_value=config.open_bus_value)

        for region in config.memory_map:
            if region.type == "ROM":
                device = ROM(region.size, region.initial_value)
            else:
                if region.type != "RAM":
                    logger.warning("Unknown device type '%s' for range %04X-%04X, defaulting to RAM",
                                   region.type, region.start, region.end)
                device = RAM(region.size, region.initial_value)
            bus.register_device(region.start, region.end, device)

        cpu = Mos6502Cpu(bus, decimal_enabled=ARCHITECTURES[config.architecture])
        # リセットベクタを使う場合、ROMのロード後にホストが cpu.reset() を呼ぶ
        if not config.initial_state.use_reset_vector:
            self.apply_initial_state(cpu, config.initial_state)
        logger.info("Built %s system with %d memory region(s)", config.architecture, len(config.memory_map))
        return cpu, bus

    # @intent:responsibility Configで定義された初期状態をCPUに適用します。
    # @intent:pre-condition use_reset_vector=True の場合、バスにリセットベクタがロード済みであること。
    def apply_initial_state(self, cpu: Mos6502Cpu, config_state: CpuInitialState) -> None:
        """
        CPUをリセットし、リセットベクタを使わない設定であればConfigの値で上書きします。
        """
        if config_state.use_reset_vector:
            cpu.reset()
            return

        state = Mos6502CpuState(pc=config_state.pc, sp=config_state.sp)
        for reg_name, value in config_state.registers.items():
            if reg_name not in ("a", "x", "y", "p"):
                raise ConfigError(f"Unknown register in initial_state: {reg_name}")
            setattr(state, reg_name, value)
        cpu.restore_state(state)
