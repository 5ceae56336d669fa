#!/usr/bin/env python3
import logging
import sys

import click

import addrsym
from addrsym.config import ResolverConfig, load_config
from addrsym.errors import ModuleUnavailableError, ResolveError
from addrsym.format import format_result
from addrsym.resolver import Resolver


def read_addresses(addresses):
    if addresses:
        yield from addresses
        return
    for line in sys.stdin:
        line = line.strip()
        if line:
            yield line


def toggle(name, short, dest, help):
    decls = [f"--{name}/--no-{name}", dest]
    if short is not None:
        decls.append(short)
    return click.option(*decls, default=None, help=help)


@click.command(help="addrsym version " + addrsym.__version__
               + ". Locate source files and line information for ADDRs"
               + " (in a.out by default).")
@click.option(
    "-e",
    "--executable",
    "executables",
    multiple=True,
    help="Find addresses in these files",
)
@click.option(
    "-j",
    "--section",
    "just_section",
    help="Treat addresses as offsets relative to NAME section.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Read default options from this INI file",
)
@toggle("addresses", "-a", "print_addresses", "Print address before each entry")
@toggle("basenames", "-s", "only_basenames", "Show only base names of source files")
@toggle("absolute", "-A", "use_comp_dir",
        "Show absolute file names using compilation directory")
@toggle("flags", "-F", "show_flags", "Also show line table flags")
@toggle("inlines", "-i", "show_inlines",
        "Show all source locations that caused inline expansion of "
        "subroutines at the address.")
@toggle("functions", "-f", "show_functions", "Show function names")
@toggle("symbols", "-S", "show_symbols", "Show symbol or section names")
@toggle("symbol-sections", None, "show_symbol_sections",
        "Show section names of symbols")
@toggle("demangle", "-C", "demangle", "Show demangled symbols")
@toggle("pretty-print", None, "pretty", "Show all information on one line")
@click.option("-v", "--verbose", is_flag=True, help="Log debug messages")
@click.argument("addresses", nargs=-1)
def main(executables, config_path, addresses, verbose, **options):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="addrsym: %(message)s",
    )
    if config_path is None:
        config = ResolverConfig()
    else:
        config = load_config(config_path)
    # Options left unspecified on the command line are None.
    config = config.with_overrides(**options)
    try:
        resolver = Resolver.load(list(executables) or ["a.out"], config)
    except ModuleUnavailableError as exc:
        raise click.ClickException(str(exc))
    failed = False
    with resolver:
        for address in read_addresses(addresses):
            try:
                result = resolver.resolve(address)
            except ResolveError as exc:
                click.echo(f"addrsym: {exc}", err=True)
                failed = True
                continue
            click.echo(format_result(result, config))
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
