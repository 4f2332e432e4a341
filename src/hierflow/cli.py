"""hierflow CLI - lay out and toggle visibility on a JSON diagram document.

Input is ``{"nodes": [...], "edges": [...]}`` read from a file or stdin;
output is JSON on stdout.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from hierflow.errors import DiagramError
from hierflow.hierarchy import OrphanPolicy, get_descendants, validate
from hierflow.layout import LayoutOptions, layout
from hierflow.model import Direction, Size, edges_from_dicts, nodes_from_dicts
from hierflow.visibility import collapse, expand, focus

_DEFAULTS = LayoutOptions()


def _json_out(data: Any) -> None:
    print(json.dumps(data))


def _load(path: str) -> dict:
    if path == "-":
        return json.load(sys.stdin)
    with open(path, encoding="utf-8") as fh:
        return json.load(fh)


def _document(args) -> tuple[list, list]:
    doc = _load(args.input)
    try:
        return nodes_from_dicts(doc.get("nodes", [])), edges_from_dicts(doc.get("edges", []))
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ValueError(f"Malformed document: {e!r}") from e


def cmd_layout(args) -> None:
    nodes, edges = _document(args)
    options = LayoutOptions(
        margin=args.margin,
        default_size=Size(args.node_width, args.node_height),
        node_spacing=args.node_spacing,
        rank_spacing=args.rank_spacing,
        orphan_policy=OrphanPolicy(args.orphans),
        relative_positions=args.relative,
    )
    result = layout(nodes, edges, Direction.parse(args.direction), options)
    _json_out({"status": "ok", **result.to_dict()})


def cmd_validate(args) -> None:
    nodes, edges = _document(args)
    issues = validate(nodes, edges, OrphanPolicy(args.orphans))
    _json_out({
        "status": "ok",
        "valid": not any(i.is_fatal for i in issues),
        "diagnostics": [i.to_dict() for i in issues],
    })


def cmd_collapse(args) -> None:
    nodes, _edges = _document(args)
    _json_out({"status": "ok", "nodes": [n.to_dict() for n in collapse(nodes, args.node_id)]})


def cmd_expand(args) -> None:
    nodes, _edges = _document(args)
    _json_out({"status": "ok", "nodes": [n.to_dict() for n in expand(nodes, args.node_id)]})


def cmd_focus(args) -> None:
    nodes, edges = _document(args)
    _json_out({"status": "ok", "nodes": [n.to_dict() for n in focus(nodes, edges, args.node_id)]})


def cmd_descendants(args) -> None:
    nodes, _edges = _document(args)
    _json_out({"status": "ok", "descendants": get_descendants(nodes, args.node_id)})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hierflow", description="Hierarchical diagram layout")
    parser.add_argument("-v", "--verbose", action="store_true", help="log progress to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_input(p: argparse.ArgumentParser) -> None:
        p.add_argument("input", nargs="?", default="-", help="JSON document (default: stdin)")

    p = sub.add_parser("layout")
    add_input(p)
    p.add_argument("--direction", default=Direction.TopToBottom.value, choices=[d.value for d in Direction])
    p.add_argument("--margin", type=float, default=_DEFAULTS.margin)
    p.add_argument("--node-width", type=float, default=_DEFAULTS.default_size.width)
    p.add_argument("--node-height", type=float, default=_DEFAULTS.default_size.height)
    p.add_argument("--node-spacing", type=float, default=_DEFAULTS.node_spacing)
    p.add_argument("--rank-spacing", type=float, default=_DEFAULTS.rank_spacing)
    p.add_argument("--orphans", default=OrphanPolicy.PROMOTE.value, choices=[o.value for o in OrphanPolicy])
    p.add_argument("--relative", action="store_true", help="child positions relative to their group")

    p = sub.add_parser("validate")
    add_input(p)
    p.add_argument("--orphans", default=OrphanPolicy.PROMOTE.value, choices=[o.value for o in OrphanPolicy])

    for name in ("collapse", "expand", "focus", "descendants"):
        p = sub.add_parser(name)
        p.add_argument("node_id")
        add_input(p)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    cmd_map = {
        "layout": cmd_layout,
        "validate": cmd_validate,
        "collapse": cmd_collapse,
        "expand": cmd_expand,
        "focus": cmd_focus,
        "descendants": cmd_descendants,
    }
    try:
        cmd_map[args.command](args)
    except DiagramError as e:
        _json_out({"status": "error", "error": str(e), "diagnostic": e.diagnostic.to_dict()})
        return 1
    except KeyError as e:
        _json_out({"status": "error", "error": str(e.args[0]) if e.args else "Unknown node id"})
        return 1
    except (OSError, json.JSONDecodeError) as e:
        _json_out({"status": "error", "error": f"Cannot read input: {e}"})
        return 1
    except ValueError as e:
        _json_out({"status": "error", "error": str(e)})
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
