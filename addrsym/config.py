from configparser import ConfigParser
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

SECTION_NAME = 'addrsym'


@dataclass(frozen=True)
class ResolverConfig:
    print_addresses: bool = False
    only_basenames: bool = False
    use_comp_dir: bool = False
    show_flags: bool = False
    show_functions: bool = True
    show_symbols: bool = True
    show_symbol_sections: bool = True
    show_inlines: bool = False
    demangle: bool = True
    pretty: bool = True
    # Treat every literal address as an offset into this section.
    just_section: Optional[str] = None

    def with_overrides(self, **overrides: Any) -> 'ResolverConfig':
        return replace(
            self,
            **{k: v for k, v in overrides.items() if v is not None},
        )


def load_config(path: str) -> ResolverConfig:
    config = ConfigParser()
    with open(path) as fp:
        config.read_file(fp)
    known = {f.name: f for f in fields(ResolverConfig)}
    values: Dict[str, Any] = {}
    for section_name in config.sections():
        if section_name != SECTION_NAME:
            raise RuntimeError("Unsupported section: {}".format(section_name))
        section = config[section_name]
        for key in section:
            option = key.replace('-', '_')
            if option not in known:
                raise RuntimeError("Unsupported option: {}".format(key))
            if option == 'just_section':
                values[option] = section[key] or None
            else:
                values[option] = section.getboolean(key)
    return ResolverConfig(**values)
