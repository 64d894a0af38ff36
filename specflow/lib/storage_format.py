"""
Markdown -> Confluence storage format.

Renders Markdown to HTML with markdown-it-py, then rewrites the constructs
Confluence handles as macros (code blocks, blockquotes).
"""

import html
import re

from markdown_it import MarkdownIt

CODE_BLOCK_RE = re.compile(r'<pre><code class="language-([\w+-]+)">(.*?)</code></pre>', re.DOTALL)
TITLED_QUOTE_RE = re.compile(
    r'<blockquote>\s*<p><strong>(.*?)</strong>:\s*(.*?)</p>\s*</blockquote>', re.DOTALL
)
QUOTE_RE = re.compile(r'<blockquote>(.*?)</blockquote>', re.DOTALL)

DEFAULT_APPROVERS = ["Product Planning", "Department Manager"]
REVIEW_STATUS = "Awaiting review"

_md = MarkdownIt("commonmark", {"html": True, "breaks": True}).enable(["table", "strikethrough"])


def convert_markdown(markdown: str) -> str:
    """Convert Markdown to Confluence storage format (XHTML + macros)."""
    body = _md.render(markdown)
    body = _convert_code_blocks(body)
    body = _convert_info_boxes(body)
    return body


def _convert_code_blocks(body: str) -> str:
    def replace(match: re.Match) -> str:
        language = match.group(1)
        code = html.unescape(match.group(2))
        return (
            '<ac:structured-macro ac:name="code">\n'
            f'  <ac:parameter ac:name="language">{language}</ac:parameter>\n'
            f'  <ac:plain-text-body><![CDATA[{code}]]></ac:plain-text-body>\n'
            '</ac:structured-macro>'
        )

    return CODE_BLOCK_RE.sub(replace, body)


def _convert_info_boxes(body: str) -> str:
    def titled(match: re.Match) -> str:
        return (
            '<ac:structured-macro ac:name="info">\n'
            f'  <ac:parameter ac:name="title">{match.group(1)}</ac:parameter>\n'
            '  <ac:rich-text-body>\n'
            f'    <p>{match.group(2)}</p>\n'
            '  </ac:rich-text-body>\n'
            '</ac:structured-macro>'
        )

    def plain(match: re.Match) -> str:
        return (
            '<ac:structured-macro ac:name="info">\n'
            '  <ac:rich-text-body>\n'
            f'    {match.group(1).strip()}\n'
            '  </ac:rich-text-body>\n'
            '</ac:structured-macro>'
        )

    body = TITLED_QUOTE_RE.sub(titled, body)
    return QUOTE_RE.sub(plain, body)


def render_page(content: str, github_url: str, approvers: list[str] | None = None,
                project_name: str | None = None) -> str:
    """Wrap converted content with the GitHub panel and approval properties."""
    approvers = approvers or DEFAULT_APPROVERS
    approver_list = ",".join(a if a.startswith("@") else f"@{a}" for a in approvers)
    project_line = (
        f"\n    <p><strong>Project</strong>: {html.escape(project_name)}</p>" if project_name else ""
    )

    return f"""<ac:structured-macro ac:name="info">
  <ac:parameter ac:name="title">GitHub sync</ac:parameter>
  <ac:rich-text-body>
    <p>The latest version is maintained on <a href="{html.escape(github_url, quote=True)}">GitHub</a></p>
    <p>Edit on GitHub; this page is updated by sync</p>{project_line}
  </ac:rich-text-body>
</ac:structured-macro>

<hr/>

{content}

<hr/>

<ac:structured-macro ac:name="page-properties">
  <ac:parameter ac:name="approval">{approver_list}</ac:parameter>
  <ac:parameter ac:name="status">{REVIEW_STATUS}</ac:parameter>
</ac:structured-macro>"""
