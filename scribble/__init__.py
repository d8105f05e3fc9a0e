"""Block-program compiler and stepwise interpreter package."""

from .run import run, compile_graph, create_interpreter  # noqa: F401
from .api import (  # noqa: F401
    build_ast_from_graph,
    dump_ast,
    dump_ast_dict,
    dump_mermaid,
    graph_stats,
    execute_traced,
)
from .ast_builder import build_ast, parse_literal  # noqa: F401
from .interpreter import Interpreter  # noqa: F401
from .workspace import Workspace  # noqa: F401
