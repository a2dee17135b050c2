"""Exit codes shared by CLI commands."""

SUCCESS_EXIT_CODE = 0
VALIDATION_EXIT_CODE = 2
FETCH_EXIT_CODE = 3
DECODE_EXIT_CODE = 4
