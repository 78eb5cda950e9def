from .common import build_parser, parse_args

__all__ = ["build_parser", "parse_args"]
