from typing import Callable, List, Optional
import re
import logging

logger = logging.getLogger(__name__)

# Fixed post-processing of a Markdeep note into a standalone slide deck.
# The body is opaque markup: nothing here renders markdown.

META_CHARSET = '<meta charset="utf-8">'
SLIDES_SCRIPT_SRC = "markdeep-slides/slides-init.js"
SCRIPT_TO_APPEND = f'\n<script src="{SLIDES_SCRIPT_SRC}"></script>\n'

FRONTMATTER_PATTERN = re.compile(r'^---\s*[\s\S]*?---\s*')


def strip_frontmatter(text: str, end_line: Optional[int] = None) -> str:
    """
    Remove a leading YAML front-matter block.

    When the host knows where the block ends (0-based index of the closing
    `---` line) the text is sliced by line offset, so `---` rules further down
    the body are never touched. Without boundaries the regular expression is
    used as a fallback.
    """
    if end_line is not None:
        lines = text.splitlines(keepends=True)
        if end_line < 0 or end_line >= len(lines):
            logger.warning(f"Front-matter end line {end_line} outside document ({len(lines)} lines), using pattern")
        else:
            return ''.join(lines[end_line + 1:])
    return FRONTMATTER_PATTERN.sub('', text, count=1)


def inject_charset(html: str) -> str:
    """
    Put the UTF-8 meta tag into the document head.
    Without any head the tag is prepended, which is not conformant HTML but
    still makes browsers pick the right encoding.
    """
    if '</head>' in html:
        return html.replace('</head>', f'{META_CHARSET}\n</head>', 1)
    if '<head>' in html:
        return html.replace('<head>', f'<head>\n{META_CHARSET}', 1)
    return f'{META_CHARSET}\n{html}'


def inject_slides_script(html: str) -> str:
    """Add the slides-init script before </body>, else before </html>, else at the end."""
    if '</body>' in html:
        return html.replace('</body>', f'{SCRIPT_TO_APPEND}\n</body>', 1)
    if '</html>' in html:
        return html.replace('</html>', f'{SCRIPT_TO_APPEND}\n</html>', 1)
    return html + SCRIPT_TO_APPEND


def run_pipeline(text: str, steps: List[Callable[[str], str]]) -> str:
    out = text
    logger.debug(f"Running pipeline with {len(steps)} steps")
    for fn in steps:
        out = fn(out)
    return out


def render_body(body: str) -> str:
    """Inject the charset and script fragments into an already stripped body."""
    logger.debug(f"Render slides: {len(body)} chars input")
    return run_pipeline(body, [inject_charset, inject_slides_script])


def render_slides(text: str, frontmatter_end: Optional[int] = None) -> str:
    """
    Turn the raw note text into the complete artifact content.
    Pure: the same input always yields byte-identical output.
    """
    return render_body(strip_frontmatter(text, frontmatter_end))
