#!/usr/bin/env python
"""CellML to ODE translator tool using cellode"""
import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional, Tuple

from cellode import __version__
from cellode._options import _merge_default_options
from cellode.assembler import build_file
from cellode.errors import CellMLError
from cellode.model import Model, list_parameters, list_states

# Import of the CasADi backend delayed until needed

log = logging.getLogger("cellode")

CELLML_SUFFIXES = (".cellml", ".xml")


def list_cellml_files(paths: List[Path]) -> List[Path]:
    """Find all CellML files in given paths (can be files and directories)

    :param paths: List of Paths to search
    :return: List of CellML file Paths found
    """
    files = []
    for path in paths:
        if path.is_file():
            files.append(path)
        elif path.is_dir():
            for glob_path in sorted(path.glob("**/*")):
                if glob_path.suffix in CELLML_SUFFIXES:
                    files.append(glob_path)
    return files


def translate_file(path: Path, options: dict) -> Optional[Model]:
    """Translate a CellML file and return the Model or None on failure

    :param path: single CellML file
    :param options: translation options
    :return: assembled Model or None on error
    """
    log.info("Translating %s ...", path)
    try:
        model = build_file(str(path), options=options)
    except (CellMLError, OSError):
        if log.level == logging.DEBUG:
            log.exception('Error translating "%s"', path)
        else:
            log.error('Error translating "%s": %s', path, sys.exc_info()[1])
        return None
    return model


def describe(model: Model) -> str:
    """Human readable listing of states, parameters and equations"""
    lines = ["model {}".format(model.name)]
    if model.time is not None:
        lines.append("  time: {}".format(model.time.name))
    lines.append("  states: {}".format(json.dumps(list(list_states(model).items()))))
    lines.append("  parameters: {}".format(json.dumps(list(list_parameters(model).items()))))
    lines.append("  algebraic: {}".format(json.dumps([s.name for s in model.alg_states])))
    lines.append("  equations:")
    for e in model.equations:
        lines.append("    {}".format(e))
    return "\n".join(lines)


def parse_options(option_args: List[str]) -> Tuple[dict, int]:
    options = {}
    errors = 0
    for opt in option_args or []:
        optsplit = opt.split("=")
        if len(optsplit) == 2:
            # Convert True/False values, otherwise string value as-is
            value_lower = optsplit[1].lower()
            if value_lower == "true":
                optsplit[1] = True
            elif value_lower == "false":
                optsplit[1] = False
            options[optsplit[0]] = optsplit[1]
        else:
            log.error('Invalid option syntax (need -O NAME=VALUE): "%s"', opt)
            errors += 1
    return options, errors


def main(argv: List[str] = None) -> int:
    """Parse command line options and do the work

    :param argv: list of command line arguments, but not including program name
    :return: number of usage errors plus files that failed to translate
    """
    logging.basicConfig(stream=sys.stderr)
    if argv is None:
        argv = sys.argv[1:]

    argp = argparse.ArgumentParser(description="Translate CellML files to ODE systems")
    argp.add_argument(
        "PATH",
        type=Path,
        nargs="+",
        help="CellML files and directory trees",
    )
    argp.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="print extra info; -vv is even more verbose",
    )
    argp.add_argument(
        "--version", action="version", version=__version__, help="print cellode version"
    )
    argp.add_argument(
        "-O",
        "--option",
        action="append",
        help="translation option in the form NAME=VALUE with no spaces or quoted",
    )
    argp.add_argument(
        "--casadi", action="store_true", help="also generate the CasADi ODE functions"
    )

    args = argp.parse_args(argv)

    if args.verbose == 0:
        log.setLevel(logging.WARNING)
    elif args.verbose == 1:
        log.setLevel(logging.INFO)
    else:
        log.setLevel(logging.DEBUG)

    errors = 0
    for path in args.PATH:
        if not path.exists():
            log.error('File or directory does not exist: "%s"', path)
            errors += 1

    options, option_errors = parse_options(args.option)
    errors += option_errors
    try:
        options = _merge_default_options(options)
    except ValueError as e:
        log.error("%s", e)
        errors += 1
    if errors:
        return errors

    files = list_cellml_files(args.PATH)
    if not files:
        log.error("No CellML files in given PATHs")
        return 1

    tic = time.perf_counter()
    failed = 0
    for path in files:
        model = translate_file(path, options)
        if model is None:
            failed += 1
            continue
        print(describe(model))
        if args.casadi:
            import cellode.backends.casadi.generator as casadi_gen

            try:
                ode = casadi_gen.generate(model)
            except CellMLError:
                if log.level == logging.DEBUG:
                    log.exception("Problem generating CasADi model %s", model.name)
                else:
                    log.error("Problem generating CasADi model %s", model.name)
                failed += 1
                continue
            print(ode.create_function_f_x_rhs())
    toc = time.perf_counter()

    goodbye_message = "Finished in {:0.4f} seconds".format(toc - tic)
    if failed:
        goodbye_message = " ".join(
            [goodbye_message, "with {} of {} files failing.".format(failed, len(files))])
    log.info(goodbye_message)
    return errors + failed


if __name__ == "__main__":
    err = main(sys.argv[1:])
    logging.shutdown()
    sys.exit(err)
