"""safebash: a line-based linter for safer Bash scripts."""
