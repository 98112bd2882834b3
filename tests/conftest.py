"""
テスト共通: 小さな MediaWiki XML ダンプを組み立てる。
"""

import pytest

EXPORT_NS = 'http://www.mediawiki.org/xml/export-0.11/'

SITEINFO = """
  <siteinfo>
    <sitename>Wikipedia</sitename>
    <dbname>testwiki</dbname>
    <namespaces>
      <namespace key="-2" case="first-letter">Media</namespace>
      <namespace key="0" case="first-letter" />
    </namespaces>
  </siteinfo>"""

# 1 リビジョンだけの最小のページ
EXAMPLE_PAGE = (
    '<page><title>Test</title><ns>0</ns><id>1</id>'
    '<revision><id>10</id><timestamp>2020-01-01T00:00:00Z</timestamp>'
    '<contributor><username>Alice</username><id>5</id></contributor>'
    '<text>Hello</text></revision></page>'
)

FULL_PAGE = """
  <page>
    <title>Main Page</title>
    <ns>0</ns>
    <id>15580374</id>
    <redirect title="Main page (old)" />
    <restrictions>edit=sysop:move=sysop</restrictions>
    <revision>
      <id>100</id>
      <timestamp>2001-01-15T13:15:00Z</timestamp>
      <contributor>
        <ip>127.0.0.1</ip>
      </contributor>
      <minor />
      <comment>first &amp; only</comment>
      <origin>100</origin>
      <model>wikitext</model>
      <format>text/x-wiki</format>
      <text bytes="25" sha1="abc" xml:space="preserve">Line one
  &lt;b&gt;Line two&lt;/b&gt; </text>
      <sha1>abc</sha1>
    </revision>
    <revision>
      <id>101</id>
      <parentid>100</parentid>
      <timestamp>2002-02-02T02:02:02Z</timestamp>
      <contributor deleted="deleted" />
      <comment deleted="deleted" />
      <model>wikitext</model>
      <format>text/x-wiki</format>
      <text deleted="deleted" />
      <sha1 />
    </revision>
    <revision>
      <id>102</id>
      <parentid>101</parentid>
      <timestamp>2003-03-03T03:03:03Z</timestamp>
      <contributor>
        <username>Bob</username>
        <id>7</id>
      </contributor>
      <comment></comment>
      <text bytes="0" />
    </revision>
  </page>"""


def wrap_dump(*pages: str, siteinfo: bool = True) -> bytes:
    """page 要素の文字列を mediawiki ルートで包んで UTF-8 のバイト列にする。"""
    body = (SITEINFO if siteinfo else '') + ''.join(pages)
    return (
        f'<mediawiki xmlns="{EXPORT_NS}" version="0.11" xml:lang="en">'
        f'{body}\n</mediawiki>\n'
    ).encode('utf-8')


@pytest.fixture
def example_dump() -> bytes:
    return wrap_dump(EXAMPLE_PAGE)


@pytest.fixture
def full_dump() -> bytes:
    return wrap_dump(EXAMPLE_PAGE, FULL_PAGE)
