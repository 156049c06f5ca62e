from strictivars.parsing.ruby import RUBY_LANGUAGE, OffsetMap, ParsedSource, has_error_nodes, parse_ruby

__all__ = ["RUBY_LANGUAGE", "OffsetMap", "ParsedSource", "has_error_nodes", "parse_ruby"]
