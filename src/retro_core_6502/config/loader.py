# retro_core_6502/config/loader.py
"""
YAML形式のシステム構成ファイルを読み込み、SystemConfigへ変換します。
"""
from typing import Any, Dict

import yaml

from .models import SystemConfig, MemoryRegion, CpuInitialState


# @intent:responsibility 構成データの不備を表す例外。
class ConfigError(ValueError):
    pass


class ConfigLoader:
    def load_from_file(self, path: str) -> SystemConfig:
        with open(path, 'r') as f:
            return self.load_from_string(f.read())

    def load_from_string(self, text: str) -> SystemConfig:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a mapping.")
        return self._parse_config(data)

    def _parse_config(self, data: Dict[str, Any]) -> SystemConfig:
        arch = str(data.get("architecture", "MOS6502")).upper()

        memory_map = []
        for region_data in data.get("memory_map", []):
            if "start" not in region_data or "end" not in region_data:
                raise ConfigError(f"Memory region requires 'start' and 'end': {region_data}")
            region = MemoryRegion(
                start=self._parse_int(region_data["start"]),
                end=self._parse_int(region_data["end"]),
                type=str(region_data.get("type", "RAM")).upper(),
                label=region_data.get("label", ""),
                initial_value=self._parse_int(region_data.get("initial_value", 0)),
            )
            if not 0 <= region.start <= region.end <= 0xFFFF:
                raise ConfigError(f"Invalid memory region range: {region.start:#06x}-{region.end:#06x}")
            memory_map.append(region)

        open_bus = data.get("open_bus_value")

        initial_state_data = data.get("initial_state", {}) or {}
        initial_state = CpuInitialState(
            use_reset_vector=bool(initial_state_data.get("use_reset_vector", True)),
            pc=self._parse_int(initial_state_data.get("pc", 0)),
            sp=self._parse_int(initial_state_data.get("sp", 0xFD)),
            registers={
                str(name).lower(): self._parse_int(value)
                for name, value in (initial_state_data.get("registers", {}) or {}).items()
            },
        )

        return SystemConfig(
            architecture=arch,
            memory_map=memory_map,
            open_bus_value=None if open_bus is None else self._parse_int(open_bus),
            initial_state=initial_state,
        )

    # @intent:responsibility 整数表現 (int, "0x..", "$..", 10進文字列) を解釈します。
    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ConfigError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            text = value.strip()
            try:
                if text.lower().startswith("0x"):
                    return int(text, 16)
                if text.startswith("$"):
                    return int(text[1:], 16)
                return int(text)
            except ValueError:
                pass
        raise ConfigError(f"Invalid integer format: {value}")
