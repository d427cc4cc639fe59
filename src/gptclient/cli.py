"""Command line access to the local tokenizer."""

import argparse
import json
import sys
from typing import Sequence

from .config import ClientSettings, configure_logging
from .errors import GptClientError
from .factory import get_encoding, list_encodings
from .strategy import get_strategy


def _read_text(args: argparse.Namespace) -> str:
    """Text from the positional argument, or stdin when it is omitted or ``-``."""
    if args.text is None or args.text == "-":
        return sys.stdin.read()
    return args.text


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gptclient", description="Count, encode and decode GPT-2 tokens."
    )
    parser.add_argument(
        "--encoding",
        default="gpt2",
        choices=list_encodings(),
        help="Encoding to use (default: gpt2).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: OPENAI_LOG_LEVEL, else WARNING).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("count", "Print the number of tokens in TEXT."),
        ("encode", "Print the token ids of TEXT as a JSON list."),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("text", nargs="?", help="Input text; read from stdin if omitted.")
        cmd.add_argument(
            "--allow-special",
            action="store_true",
            help="Treat <|endoftext|> as a single control token.",
        )

    dec = sub.add_parser("decode", help="Print the text for a JSON list of token ids.")
    dec.add_argument("text", nargs="?", help="JSON list of ids; read from stdin if omitted.")

    show = sub.add_parser("show", help="Print each token id next to its text.")
    show.add_argument("text", nargs="?", help="Input text; read from stdin if omitted.")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return a process exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or ClientSettings().log_level)

    enc = get_encoding(args.encoding)
    text = _read_text(args)

    try:
        match args.command:
            case "count" | "encode":
                strategy = get_strategy("all") if args.allow_special else None
                tokens = enc.encode(text, strategy)
                if args.command == "count":
                    print(len(tokens))
                else:
                    print(json.dumps(tokens))
            case "decode":
                try:
                    tokens = json.loads(text)
                except json.JSONDecodeError as e:
                    print(f"error: expected a JSON list of token ids ({e})", file=sys.stderr)
                    return 2
                if not isinstance(tokens, list):
                    print("error: expected a JSON list of token ids", file=sys.stderr)
                    return 2
                sys.stdout.write(enc.decode(tokens))
            case "show":
                tokens = enc.encode(text)
                for tok, piece in zip(tokens, enc.token_strings(tokens)):
                    print(f"[{tok}] {piece}")
    except GptClientError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    return 0
