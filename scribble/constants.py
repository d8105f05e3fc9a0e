"""Named constants — eliminates magic strings across the codebase."""

from __future__ import annotations

START_BLOCK_TYPE = "start"
STOP_BLOCK_TYPE = "stop"

BRANCH_TRUE = "true"
BRANCH_FALSE = "false"
BRANCH_BODY = "body"
DEFAULT_BRANCH = BRANCH_BODY

NEXT_PORT = "next"
VARIABLE_NAME_PORT = "name"
INPUT_PORT_PREFIX = "input:"

DEFAULT_MAX_STEPS = 10000
DEFAULT_TICKS_PER_SECOND = 60
DEFAULT_HEADING = 0.0
FULL_TURN_DEGREES = 360.0

OUTPUT_SAY = "say"
OUTPUT_THINK = "think"
OUTPUT_CLEAR = "clear"

IF_ENDER_TYPE = "if_branch_ender"
REPEAT_ENDER_PREFIX = "repeat_loop_ender"
REPEAT_ENDER_MAX_VARIANT = 7
ENDER_PAIR_KEY = "pair_with"
ENDER_VARIANT_KEY = "idx"

NUMERIC_LITERAL_PATTERN = r"^-?\d+(\.\d+)?$"

MERMAID_MAX_LABEL_LEN = 40
