#!/usr/bin/env python3
"""
Markov chain generator command line.

Subcommands:
- train:    fold text/chain inputs into one or more chain files
- generate: build a chain from inputs and print generated paragraphs
- merge:    fold many text/chain inputs into a single chain file
- serve:    run the HTTP service
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from markov_chain.config import settings
from markov_chain.services.chain import Chain
from markov_chain.services.persistence import (
    ChainDecodeError,
    UnknownFormatError,
    available_formats,
    format_for_path,
    is_chain_path,
    load_chain,
    save_chain,
)
from markov_chain.services.text_chain import TextChain, TokenTypeError, as_text_chain
from markov_chain.utils.logger import setup_logger

logger = setup_logger(__name__)


class CommandError(Exception):
    """A user-facing error that ends the command with exit status 1."""


def formats_help() -> str:
    """Describe the supported chain file formats (used as help epilog)."""
    lines = [
        "The file format of the chains is determined by its file extension.",
        "These are the file formats and extensions supported:",
        "",
    ]
    entries = [(" ".join(f".{ext}" for ext in fmt.extensions), fmt.description)
               for fmt in available_formats()]
    width = max(len(exts) for exts, _ in entries) + 4
    for exts, description in entries:
        lines.append(f"{exts:>{width}} - {description}")
    return "\n".join(lines)


def parse_order(value) -> int:
    """Validate an --order value; reported as a command error, not a usage error."""
    try:
        order = int(value)
    except ValueError:
        raise CommandError(f"invalid number for order: {value}")
    if order < 1:
        raise CommandError("order must be at least 1")
    return order


def non_negative(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value}")
    if number < 0:
        raise argparse.ArgumentTypeError("must not be negative")
    return number


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="markov-chain",
        description="A markov chain generator.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {settings.SERVICE_VERSION}")
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # train
    train_parser = subparsers.add_parser(
        "train",
        help="Train a new chain, or update existing chains from files",
        description="Trains a new markov chain, or updates an existing markov chain from a file.",
        epilog=formats_help(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    train_parser.add_argument("inputs", nargs="+", metavar="INPUT",
                              help="Input training data (text files or chain files)")
    train_parser.add_argument("-u", "--update", nargs="+", required=True, metavar="CHAIN",
                              help="Chain files to update or create")
    train_parser.add_argument("-r", "--order", default=settings.CHAIN_ORDER,
                              help="Order of the markov chain")

    # generate
    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate paragraphs from text or chain files",
        epilog=formats_help(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    generate_parser.add_argument("inputs", nargs="+", metavar="INPUT",
                                 help="Text files or chain files to generate from")
    generate_parser.add_argument("-r", "--order", default=None,
                                 help="Order of the markov chain (defaults to the chain inputs' order)")
    generate_parser.add_argument("-p", "--paragraphs", type=non_negative, default=settings.DEFAULT_PARAGRAPHS,
                                 help="Number of paragraphs to generate")
    generate_parser.add_argument("-s", "--sentences", type=non_negative, default=settings.DEFAULT_SENTENCES,
                                 help="Number of sentences per paragraph")

    # merge
    merge_parser = subparsers.add_parser(
        "merge",
        help="Merge text or chain files into a single chain file",
        epilog=formats_help(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    merge_parser.add_argument("inputs", nargs="+", metavar="INPUT",
                              help="Text files or chain files to merge")
    merge_parser.add_argument("-o", "--output", required=True, metavar="CHAIN",
                              help="Chain file to write (updated if it exists)")
    merge_parser.add_argument("-r", "--order", default=None,
                              help="Order of the markov chain (defaults to the chain inputs' order)")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service")
    serve_parser.add_argument("--host", default=settings.HOST, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=settings.PORT, help="Bind port")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        parser.exit(1, "Error: command not specified\n")
    return args


# --- input handling ---
def check_inputs_exist(inputs: Sequence[str]):
    for path in inputs:
        if not Path(path).exists():
            raise CommandError(f"could not find input file `{path}`")


def check_chain_paths(paths: Sequence[str]):
    for path in paths:
        try:
            format_for_path(path)
        except UnknownFormatError as e:
            raise CommandError(str(e))


def read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise CommandError(f"could not read `{path}` as UTF-8 text: {e}")
    except OSError as e:
        raise CommandError(f"could not read `{path}`: {e}")


def read_chain(path: str) -> TextChain:
    try:
        return as_text_chain(load_chain(path))
    except (ChainDecodeError, TokenTypeError) as e:
        raise CommandError(f"could not read chain file `{path}`: {e}")
    except OSError as e:
        raise CommandError(f"error reading {path}: {e}")


def load_inputs(inputs: Sequence[str]) -> List[tuple]:
    """
    Read every input once.

    Returns:
        (path, value) pairs where value is a Chain for chain files and the
        file contents for anything else
    """
    check_inputs_exist(inputs)
    loaded = []
    for path in inputs:
        if is_chain_path(path):
            logger.info(f"[CLI] Loading {path}")
            loaded.append((path, read_chain(path)))
        else:
            loaded.append((path, read_text(path)))
    return loaded


def resolve_order(requested: Optional[int], loaded: Sequence[tuple]) -> int:
    """Pick the order for a command: explicit flag, else first chain input, else default."""
    if requested is not None:
        return requested
    for _, value in loaded:
        if isinstance(value, Chain):
            return value.order
    return settings.CHAIN_ORDER


def check_orders(order: int, loaded: Sequence[tuple]):
    for path, value in loaded:
        if isinstance(value, Chain) and value.order != order:
            raise CommandError(
                f"chain file `{path}` has a chain with order {value.order}, "
                f"but {order} was specified"
            )


def fold_inputs(chain: TextChain, loaded: Sequence[tuple]) -> TextChain:
    """Train text inputs into the chain and merge chain inputs into it."""
    for _, value in loaded:
        if isinstance(value, Chain):
            chain.merge(value)
        else:
            chain.train_string(value)
    return chain


def write_chain(chain: Chain, path: str):
    try:
        save_chain(chain, path)
    except OSError as e:
        raise CommandError(f"error writing to {path}: {e}")


# --- commands ---
def cmd_train(args: argparse.Namespace):
    check_inputs_exist(args.inputs)
    check_chain_paths(args.update)

    chains = []
    for path in args.update:
        if Path(path).exists():
            logger.info(f"[CLI] Loading {path}")
            chain = read_chain(path)
            if chain.order != args.order:
                raise CommandError(
                    f"chain file `{path}` has a chain with order {chain.order}, "
                    f"but {args.order} was specified on the command line"
                )
            chains.append((path, chain))
        else:
            logger.info(f"[CLI] {path} does not exist, it will be created")
            chains.append((path, TextChain(args.order)))

    loaded = load_inputs(args.inputs)
    check_orders(args.order, loaded)

    for path, chain in chains:
        logger.info(f"[CLI] Training {path}")
        fold_inputs(chain, loaded)
        logger.info(f"[CLI] Writing {path}")
        write_chain(chain, path)


def cmd_generate(args: argparse.Namespace):
    loaded = load_inputs(args.inputs)
    order = resolve_order(args.order, loaded)
    check_orders(order, loaded)

    chain = fold_inputs(TextChain(order), loaded)
    for paragraph in chain.generate_text(args.paragraphs, args.sentences):
        print(paragraph)


def cmd_merge(args: argparse.Namespace):
    check_chain_paths([args.output])
    loaded = load_inputs(args.inputs)

    output = Path(args.output)
    if output.exists():
        logger.info(f"[CLI] Loading {output}")
        loaded.insert(0, (args.output, read_chain(args.output)))

    order = resolve_order(args.order, loaded)
    check_orders(order, loaded)

    chain = fold_inputs(TextChain(order), loaded)
    logger.info(f"[CLI] Writing {args.output}")
    write_chain(chain, args.output)


def cmd_serve(args: argparse.Namespace):
    import uvicorn

    uvicorn.run(
        "markov_chain.app:app",
        host=args.host,
        port=args.port,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


COMMANDS = {
    "train": cmd_train,
    "generate": cmd_generate,
    "merge": cmd_merge,
    "serve": cmd_serve,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        if getattr(args, "order", None) is not None:
            args.order = parse_order(args.order)
        COMMANDS[args.command](args)
    except CommandError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
