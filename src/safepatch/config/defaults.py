"""Starter .safepatch.toml template."""

DEFAULT_TOML = """\
# safepatch configuration
version = "1.0"

[apply]
fuzz_window = 3                     # lines searched either side of a hunk's recorded position
ignore_trailing_whitespace = true   # tolerate trailing-whitespace drift in context lines
normalize_eol = true                # adapt LF/CRLF patches to the target's line endings

[plan]
id_prefix = "chg"                   # change ids look like chg-001

[output]
format = "terminal"                 # terminal | json
show_summary = true
"""
