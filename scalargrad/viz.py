"""Text and Graphviz DOT renderings of a computation graph."""

from __future__ import annotations
from typing import Dict, List, Tuple

from .engine import Node, topological_sort


def trace(root: Node) -> Tuple[List[Node], List[Tuple[Node, Node]]]:
    """
    Collect the graph reachable from `root`.

    Returns:
        (nodes, edges): nodes in topological order (root last), and one
        (operand, consumer) edge per distinct operand of each node.
    """
    nodes = topological_sort(root)
    edges = [(operand, node) for node in nodes for operand in node.operands]
    return nodes, edges


def _name(node: Node, ids: Dict[Node, int]) -> str:
    return node.label or f'v{ids[node]}'


def _dot_escape(text: str) -> str:
    return text.replace('\\', '\\\\').replace('"', '\\"')


def _op_label(node: Node) -> str:
    if node.exponent is not None:
        return f'{node.op.value}{node.exponent:g}'
    return node.op.value


def draw_graph(root: Node, format: str = 'text') -> str:
    """
    Generate a visualization of the computation graph.

    Args:
        root: Root node of the graph to visualize.
        format: 'text' for an ASCII listing, 'dot' for Graphviz DOT source.

    Returns:
        String representation of the graph.

    Raises:
        ValueError: If format is not 'text' or 'dot'.
    """
    nodes, edges = trace(root)
    ids = {n: i for i, n in enumerate(nodes)}

    if format == 'dot':
        lines = ['digraph G {', '  rankdir=LR;']
        for node in nodes:
            nid = ids[node]
            lines.append(
                f'  n{nid} [label="{_dot_escape(_name(node, ids))}\\n'
                f'value={node.value:.4f}\\n'
                f'grad={node.grad:.4f}", shape=box];'
            )
            if not node.is_leaf():
                lines.append(f'  op{nid} [label="{_op_label(node)}", shape=circle];')
                lines.append(f'  op{nid} -> n{nid};')
        for operand, consumer in edges:
            lines.append(f'  n{ids[operand]} -> op{ids[consumer]};')
        lines.append('}')
        return '\n'.join(lines)

    if format == 'text':
        lines = ['Computation Graph:', '=' * 50]
        for node in reversed(nodes):
            op_str = ''
            if not node.is_leaf():
                # args, not operands, so x*x prints as *(x, x)
                arg_names = ', '.join(_name(a, ids) for a in node.args)
                op_str = f' = {_op_label(node)}({arg_names})'
            lines.append(
                f'{_name(node, ids):>10}: value={node.value:>10.4f}, '
                f'grad={node.grad:>10.4f}{op_str}'
            )
        return '\n'.join(lines)

    raise ValueError(f"Unknown format {format!r}, expected 'text' or 'dot'")
