"""
Token stream inspector - Main Entry Point
Lexes a source file into a token tree and shows how it flattens
"""

import sys
import argparse
import logging
from pathlib import Path

from token_tree import parse_token_stream
from token_input import Input, DelimToken, PunctToken, IdentToken, LiteralToken, DEFAULT_LOOKAHEAD
from diagnostic import Incomplete, DEFAULT_MAX_TRAILING
from error_handling import TokenizerError


TOKEN_KINDS = {
  DelimToken: "DELIM",
  PunctToken: "PUNCT",
  IdentToken: "IDENT",
  LiteralToken: "LITERAL",
}


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      description='Inspect how a token tree flattens into a parser input stream',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s input.txt                  # Show the token tree as parsed
  %(prog)s --tokens input.txt         # List the flattened tokens with positions
  %(prog)s --trailing 3 input.txt     # Skip 3 tokens and report what is left
  %(prog)s --tokens --debug input.txt # With debug logging
        """
  )

  parser.add_argument(
      'source',
      help='source file to tokenize'
  )

  parser.add_argument(
      '--tokens',
      action='store_true',
      help='List the flattened token stream'
  )

  parser.add_argument(
      '--trailing',
      type=int,
      metavar='N',
      help='Consume N tokens, then show the remainder and its diagnostic'
  )

  parser.add_argument(
      '--lookahead',
      type=int,
      default=DEFAULT_LOOKAHEAD,
      metavar='K',
      help='Lookahead horizon used when listing tokens (default: %(default)s)'
  )

  parser.add_argument(
      '--max-trailing',
      type=int,
      default=DEFAULT_MAX_TRAILING,
      metavar='N',
      help='Tokens shown in the trailing input diagnostic (default: %(default)s)'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug logging'
  )

  return parser


def read_stream(source_path: str):
  text = Path(source_path).read_text(encoding='utf-8')
  return parse_token_stream(text, source_path)


def show_tree(source_path: str) -> None:
  """Print the token tree the way it renders back to text"""
  stream = read_stream(source_path)
  print(f"{len(stream)} top-level token trees:")
  print("=" * 50)
  print(stream)


def list_tokens(source_path: str, lookahead: int) -> None:
  """Print every flattened token with its position and span"""
  stream = Input(read_stream(source_path)).with_lookahead(lookahead)

  count = 0
  while not stream.is_empty():
    position = stream.position()
    token = stream.next_token()
    kind = TOKEN_KINDS.get(type(token), "?")
    print(f"{position.ordinal:5d}  {kind:<8} {str(token):<24} {token.span}")
    count += 1

  print(f"\n{count} tokens")


def show_trailing(source_path: str, skip: int, max_trailing: int) -> None:
  """Consume `skip` tokens, then show what is left of the input"""
  stream = Input(read_stream(source_path))
  for _ in range(skip):
    if stream.next_token() is None:
      break

  print(f"Remaining input after {stream.position()}:")
  print(f"  {stream.into_tree()}")

  diagnostic = Incomplete.from_stream(stream, max_trailing)
  if diagnostic is None:
    print("Nothing left to report")
  else:
    print(f"unexpected tokens at end of input:\n\n{diagnostic}")


def main() -> None:
  """Main entry point"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args()

  if args.debug:
    logging.basicConfig(level=logging.DEBUG, format='%(levelname)s - %(name)s - %(message)s')

  if not Path(args.source).exists():
    print(f"Error: Source file '{args.source}' does not exist")
    sys.exit(1)

  try:
    if args.tokens:
      list_tokens(args.source, args.lookahead)
    elif args.trailing is not None:
      show_trailing(args.source, args.trailing, args.max_trailing)
    else:
      show_tree(args.source)

  except PermissionError:
    print(f"Error: Permission denied reading '{args.source}'")
    print(f"  Hint: Make sure you have read permissions for this file")
    sys.exit(1)
  except UnicodeDecodeError as e:
    print(f"Error: Cannot decode file '{args.source}': {e}")
    print(f"  Hint: Make sure the file is a text file with UTF-8 encoding")
    sys.exit(1)
  except TokenizerError as e:
    print(f"Error: {e}")
    sys.exit(1)
  except ValueError as e:
    print(f"Error: {e}")
    if args.debug:
      import traceback
      traceback.print_exc()
    sys.exit(1)


if __name__ == "__main__":
  main()
