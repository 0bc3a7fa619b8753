"""HTML documents presented to the rendering engine.

Every document links the baseline and target stylesheets, renders each probe
in its own hidden, absolutely positioned element so probes cannot affect each
other's layout, and flips ``window.measureReady`` once parsed.
"""

import html
from typing import List, Sequence

from .models import FontDescriptor, Probe

READY_FLAG = "measureReady"

REF_BASE = "#ref-base"
REF_TARGET = "#ref-target"


def probe_selector(index: int) -> str:
    return f"#p{index}"


def scale_selector(owner: str, probe_key: str) -> str:
    """owner is "base" or a target slot such as "t0"."""
    return f"#{owner}-{probe_key}"


def target_slot(index: int) -> str:
    return f"t{index}"


def _stylesheet_links(urls: Sequence[str]) -> str:
    unique: List[str] = []
    for url in urls:
        if url not in unique:
            unique.append(url)
    return "\n".join(
        f'<link rel="stylesheet" href="{html.escape(url, quote=True)}">' for url in unique
    )


def _document(links: str, rules: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    {links}
    <style>
      * {{ box-sizing: border-box; }}
      body {{ margin: 0; padding: 20px; font-feature-settings: normal; }}
      .m {{
        position: absolute;
        top: -9999px;
        left: -9999px;
        visibility: hidden;
        white-space: pre;
        line-height: 1;
        font-variant: normal;
        font-kerning: none;
      }}
{rules}
    </style>
  </head>
  <body>
{body}
    <script>
      window.{READY_FLAG} = false;
      document.addEventListener('DOMContentLoaded', () => {{
        window.{READY_FLAG} = true;
      }});
    </script>
  </body>
</html>
"""


def _element(selector: str, css_class: str, text: str) -> str:
    element_id = selector.lstrip("#")
    return f'    <div class="m {css_class}" id="{element_id}">{html.escape(text)}</div>'


def character_batch_document(
    font: FontDescriptor,
    probes: Sequence[Probe],
    size: int,
    baseline_style: str,
    baseline_url: str,
    reference_text: str,
) -> str:
    links = _stylesheet_links([baseline_url, font.import_resource])
    # the reference target falls back to the baseline font itself, so a font
    # that never loads measures exactly like the baseline
    rules = (
        f"      .target {{ font-family: {font.style_declaration}, monospace; font-size: {size}px; }}\n"
        f"      .base {{ font-family: {baseline_style}; font-size: {size}px; }}\n"
        f"      .ref {{ font-family: '{font.family_name}', {baseline_style}; font-size: {size}px; }}"
    )
    elements = [
        _element(REF_BASE, "base", reference_text),
        _element(REF_TARGET, "ref", reference_text),
    ]
    elements.extend(
        _element(probe_selector(i), "target", probe.text) for i, probe in enumerate(probes)
    )
    return _document(links, rules, "\n".join(elements))


def scale_document(
    fonts: Sequence[FontDescriptor],
    probes: Sequence[Probe],
    size: int,
    baseline_style: str,
    baseline_url: str,
) -> str:
    """Baseline plus one or more targets, each rendering every scale probe."""
    links = _stylesheet_links([baseline_url] + [f.import_resource for f in fonts])
    rules = [f"      .base {{ font-family: {baseline_style}; font-size: {size}px; }}"]
    elements = [_element(scale_selector("base", p.key), "base", p.text) for p in probes]
    for index, font in enumerate(fonts):
        slot = target_slot(index)
        rules.append(
            f"      .{slot} {{ font-family: {font.style_declaration}; font-size: {size}px; }}"
        )
        elements.extend(_element(scale_selector(slot, p.key), slot, p.text) for p in probes)
    return _document(links, "\n".join(rules), "\n".join(elements))
