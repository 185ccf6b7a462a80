#!/usr/bin/env python3
"""
Shared Mermaid diagram formatting utilities.

Pages, flattened nets and whole hierarchical models render through these
helpers so that every diagram uses the same shapes:
- places are circles, port places carry their port type
- transitions are boxes, substitution transitions are subroutine boxes
- arcs carry their inscription as the edge label

Usage:
    from lamella.common.mermaid import format_place_node, format_arc

    node = format_place_node("p1", "Waiting")
    edge = format_arc("p1", "t1", "1`x")
"""

from __future__ import annotations

import re
from typing import Optional

_UNSAFE = re.compile(r"[^A-Za-z0-9_]")


def mermaid_id(node_id: str) -> str:
    """
    Turn an arbitrary node id into a Mermaid-safe identifier.

    Example:
        >>> mermaid_id("T1.arc-3")
        'T1_arc_3'
    """
    return _UNSAFE.sub("_", node_id)


def _escape(label: str) -> str:
    return label.replace('"', "#quot;")


def format_place_node(node_id: str, name: str, port_type: Optional[str] = None) -> str:
    """
    Format a place node.

    Example:
        >>> format_place_node("p1", "Waiting")
        '    p1(("Waiting"))'
        >>> format_place_node("p2", "In", port_type="in")
        '    p2(("[in] In"))'
    """
    label = f"[{port_type}] {name}" if port_type else name
    return f'    {mermaid_id(node_id)}(("{_escape(label)}"))'


def format_transition_node(node_id: str, name: str, is_substitution: bool = False) -> str:
    """
    Format a transition node. Substitution transitions use the subroutine shape.

    Example:
        >>> format_transition_node("t1", "Fire")
        '    t1["Fire"]'
        >>> format_transition_node("t2", "Sub", is_substitution=True)
        '    t2[["Sub"]]'
    """
    if is_substitution:
        return f'    {mermaid_id(node_id)}[["{_escape(name)}"]]'
    return f'    {mermaid_id(node_id)}["{_escape(name)}"]'


def format_arc(from_id: str, to_id: str, label: Optional[str] = None) -> str:
    """
    Format an arc edge.

    Example:
        >>> format_arc("p1", "t1", "x")
        '    p1 -->|"x"| t1'
        >>> format_arc("p1", "t1")
        '    p1 --> t1'
    """
    edge = f"    {mermaid_id(from_id)} -->"
    if label:
        edge = f'{edge}|"{_escape(label)}"|'
    return f"{edge} {mermaid_id(to_id)}"


def format_subgraph(subgraph_id: str, title: str, content: list[str]) -> str:
    """
    Format a subgraph grouping the nodes of one page.

    Example:
        >>> format_subgraph("main", "Main", ['    p1(("A"))'])
        '    subgraph main ["Main"]\\n    p1(("A"))\\n    end'
    """
    lines = [f'    subgraph {mermaid_id(subgraph_id)} ["{_escape(title)}"]']
    lines.extend(content)
    lines.append("    end")
    return "\n".join(lines)


def format_comment(text: str) -> str:
    """
    Format a comment for Mermaid diagrams.

    Example:
        >>> format_comment("flattened")
        '    %% flattened'
    """
    return f"    %% {text}"
