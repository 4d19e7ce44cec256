# ui/markdown_renderer.py
# -*- coding: utf-8 -*-

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from markdown import markdown


@dataclass(frozen=True)
class MarkdownTheme:
    ink: str = "#1F2937"
    faint: str = "#6B7280"
    rule: str = "#E5E7EB"
    page: str = "#FFFFFF"
    header_bg: str = "#F9FAFB"
    # heatmap intensity 0..4
    levels: Tuple[str, ...] = ("#EBEDF0", "#9BE9A8", "#40C463", "#30A14E", "#216E39")


class MarkdownRenderer:
    """
    Report markdown -> HTML page for the stats window.

    tkinterweb (tkhtml) knows no SVG or canvas, so the report marks colored
    blocks with placeholders and they become inline-styled spans here:
      {lvl:N}          heatmap day at intensity N (0..4)
      {color:#RRGGBB}  legend swatch
    """

    LEVEL = re.compile(r"\{lvl:([0-4])\}")
    COLOR = re.compile(r"\{color:(#[0-9A-Fa-f]{6})\}")

    def __init__(self, theme: Optional[MarkdownTheme] = None):
        self.theme = theme or MarkdownTheme()

    def preprocess(self, md_text: str) -> str:
        if not md_text:
            return ""
        levels = self.theme.levels
        out = self.LEVEL.sub(
            lambda m: _block("cell", levels[int(m.group(1))]), md_text
        )
        return self.COLOR.sub(lambda m: _block("swatch", m.group(1)), out)

    def extensions(self) -> Tuple[List[str], Dict]:
        return ["tables", "sane_lists", "attr_list"], {}

    def css(self) -> str:
        t = self.theme
        return f"""
        body {{
          font-family: "Segoe UI", Roboto, Cantarell, Arial, sans-serif;
          font-size: 13px;
          line-height: 1.45;
          color: {t.ink};
          background: {t.page};
          margin: 12px 16px;
        }}
        h1 {{ font-size: 1.4em; margin: 0 0 2px; }}
        h2 {{ font-size: 1.05em; margin: 18px 0 6px; border-bottom: 1px solid {t.rule}; }}
        em, code {{ color: {t.faint}; }}
        code {{ font-family: Menlo, Consolas, monospace; font-size: 0.9em; }}
        ul {{ margin: 4px 0; padding-left: 18px; }}
        table {{ border-collapse: collapse; width: 100%; margin: 4px 0 8px; }}
        th {{ background: {t.header_bg}; text-align: left; }}
        th, td {{ border: 1px solid {t.rule}; padding: 4px 8px; }}
        .cell, .swatch {{ display: inline-block; font-size: 6px; }}
        .cell {{ width: 8px; height: 8px; margin-right: 1px; }}
        .swatch {{ width: 10px; height: 10px; }}
        """

    def to_html(self, md_text: str) -> str:
        exts, cfg = self.extensions()
        body = markdown(
            self.preprocess(md_text),
            extensions=exts,
            extension_configs=cfg,
            output_format="html5",
        )
        return (
            '<html><head><meta charset="utf-8"/>'
            f"<style>{self.css()}</style></head>"
            f"<body>{body}</body></html>"
        )


def _block(cls: str, color: str) -> str:
    return f'<span class="{cls}" style="background:{color}">&nbsp;</span>'
