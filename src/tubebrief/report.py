"""Export rendering: readable Markdown and HTML documents for a summary."""

import re
from html import escape

from tubebrief.models import Summary, format_timestamp

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")
_UNDERSCORE_RUNS = re.compile(r"_+")


def export_filename(title: str, extension: str) -> str:
    """Filesystem-safe download name derived from a video title."""
    base = _UNSAFE_CHARS.sub("_", title or "video_summary")
    base = _UNDERSCORE_RUNS.sub("_", base)[:50]
    return f"{base}.{extension}"


def transcript_filename(video_id: str) -> str:
    return f"transcript-{video_id}.md"


class SummaryExporter:
    """Renders a persisted Summary as a standalone document."""

    def to_markdown(self, summary: Summary) -> str:
        """Render a Summary as markdown. Screenshots are listed, not embedded."""
        lines = [
            f"# {summary.video_title}",
            "",
            f"> Video by {summary.video_author} - [Watch on YouTube]({summary.video_url})",
            "",
            "## Key Points",
            "",
        ]
        lines.extend(f"- {point}" for point in summary.key_points)
        lines += ["", "## Summary", "", summary.summary, "", "## Outline", ""]

        for section in summary.structured_outline:
            lines.append(f"### {section.title}")
            lines.append("")
            lines.extend(f"- {item}" for item in section.items)
            lines.append("")

        if summary.screenshots:
            lines.append("## Screenshots")
            lines.append("")
            for shot in summary.screenshots:
                lines.append(f"- [{format_timestamp(shot.timestamp)}] {shot.description}")
            lines.append("")

        return "\n".join(lines)

    def to_html(self, summary: Summary) -> str:
        """Render a Summary as a self-contained HTML page with embedded screenshots."""
        key_points = "".join(f"<li>{escape(p)}</li>" for p in summary.key_points)
        paragraphs = "".join(
            f"<p>{escape(p.strip())}</p>" for p in summary.summary.split("\n") if p.strip()
        )

        outline_html = []
        for section in summary.structured_outline:
            items = "".join(f"<li>{escape(i)}</li>" for i in section.items)
            outline_html.append(f"<h3>{escape(section.title)}</h3><ul>{items}</ul>")

        figures = []
        for shot in summary.screenshots:
            caption = f"{escape(shot.description)} [{format_timestamp(shot.timestamp)}]"
            figures.append(
                f'<figure>'
                f'<img src="data:image/jpeg;base64,{shot.image_url}" alt="{escape(shot.description)}">'
                f'<figcaption>{caption}</figcaption>'
                f'</figure>\n'
            )
        screenshots = (
            f"<section><h2>Screenshots</h2>{''.join(figures)}</section>" if figures else ""
        )

        title = escape(summary.video_title)
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<title>{title}</title>
<style>
    body {{ font-family: system-ui, sans-serif; max-width: 900px; margin: 2rem auto; padding: 0 1rem; line-height: 1.6; color: #1a1a1a; }}
    h1 {{ border-bottom: 2px solid #333; padding-bottom: 0.5rem; }}
    h2 {{ color: #2c5282; margin-top: 2rem; }}
    .byline {{ color: #666; }}
    figure {{ margin: 1.5rem 0; text-align: center; }}
    img {{ max-width: 100%; border-radius: 8px; box-shadow: 0 2px 8px rgba(0,0,0,0.15); }}
    figcaption {{ font-size: 0.9rem; color: #666; margin-top: 0.5rem; font-style: italic; }}
    ul {{ padding-left: 1.5rem; }}
    li {{ margin-bottom: 0.5rem; }}
</style>
</head>
<body>
<h1>{title}</h1>
<p class="byline">Video by {escape(summary.video_author)} - <a href="{escape(summary.video_url)}">Watch on YouTube</a></p>
<section><h2>Key Points</h2><ul>{key_points}</ul></section>
<section><h2>Summary</h2>{paragraphs}</section>
<section><h2>Outline</h2>{"".join(outline_html)}</section>
{screenshots}
</body>
</html>"""
