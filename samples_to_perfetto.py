#!env python3

import argparse
import contextlib
import logging
import sys

from stackdiff.emit_trace import emit_trace
from stackdiff.json_writer import JSONWriter
from stackdiff.parse_stack_samples import (
    StackParseError,
    parse_stack_samples,
    read_lines,
)
from stackdiff.perfetto_writer import PerfettoWriter


def make_writer(out, freq, json_output=False):
    """Creates the writer for the selected output format.

    `out` must be a text stream for JSON and a binary stream otherwise.
    """
    if json_output:
        return JSONWriter(out, freq)
    return PerfettoWriter(out, freq)


def run(infile, out, fields=None, freq=1000, json_output=False, passthrough=None):
    """Converts the profiler output read from `infile` into a trace on `out`."""
    writer = make_writer(out, freq, json_output)
    writer.header()
    lines = read_lines(infile, passthrough)
    samples = parse_stack_samples(lines, fields)
    for obj in emit_trace(samples):
        writer.add(obj)
    writer.footer()


def _comma_list(value):
    return [item for item in value.split(",") if item]


def _join_fields_values(argv):
    """Turns `--fields VALUE` into `--fields=VALUE`, so that VALUE may start with "-"."""
    joined = []
    args = iter(argv)
    for arg in args:
        if arg == "--fields":
            value = next(args, None)
            joined.append(arg if value is None else f"--fields={value}")
        else:
            joined.append(arg)
    return joined


def _open_input(filename):
    if filename == "-":
        return contextlib.nullcontext(sys.stdin)
    return open(filename, "r")


def _open_output(filename, json_output):
    if filename == "-":
        stream = sys.stdout if json_output else sys.stdout.buffer
        return contextlib.nullcontext(stream)
    return open(filename, "w" if json_output else "wb")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Transform sampled call stacks (e.g., dtrace) to a perfetto trace."
    )
    parser.add_argument(
        "filename",
        type=str,
        nargs="?",
        default="-",
        help='The file with the sampled stacks; use "-" for stdin',
    )
    parser.add_argument(
        "-o",
        "--out",
        type=str,
        help='The file to write the results to; use "-" for stdout',
        default="-",
    )
    parser.add_argument(
        "-f",
        "--freq",
        type=int,
        help="The frequency of profile sampling, in Hz",
        default=1000,
    )
    parser.add_argument(
        "--fields",
        type=_comma_list,
        action="extend",
        help="Comma-separated fields preceding each stack. Valid fields: pid, tid. "
        'Any other field is ignored (consider using "-" for such fields).',
    )
    parser.add_argument(
        "--passthrough",
        action="store_true",
        help="Pass the input through to stdout, making this tool invisible "
        "to pipelines. Requires --out.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output chrome://tracing JSON instead of a perfetto trace",
    )
    parser.add_argument(
        "--log-level",
        help="Set the logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
    )
    if argv is None:
        argv = sys.argv[1:]
    args = parser.parse_args(_join_fields_values(argv))

    logging.basicConfig(
        level=logging.getLevelName(args.log_level),
        format="%(levelname)s: %(message)s",
    )

    if args.passthrough and args.out == "-":
        logging.error(
            "--passthrough requires the use of --out (because --passthrough needs stdout)"
        )
        sys.exit(1)
    if args.freq <= 0:
        logging.error("--freq must be a positive number of samples per second")
        sys.exit(1)

    try:
        with _open_input(args.filename) as infile, _open_output(
            args.out, args.json
        ) as out:
            run(
                infile,
                out,
                fields=args.fields,
                freq=args.freq,
                json_output=args.json,
                passthrough=sys.stdout if args.passthrough else None,
            )
    except StackParseError as e:
        logging.error("%s", e)
        sys.exit(1)
    except OSError as e:
        logging.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
