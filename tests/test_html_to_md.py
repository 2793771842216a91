from promptkit.html_to_md import html_to_md


def test_plain_text_passes_through():
    assert html_to_md("just some text") == "just some text"


def test_heading():
    assert html_to_md("<h1>Title</h1>") == "# Title"


def test_heading_levels_match_tag():
    for level in range(1, 7):
        result = html_to_md(f"<h{level}>Name</h{level}>")
        assert result == "#" * level + " Name"


def test_bold_inside_paragraph():
    assert html_to_md("<p>Hello <strong>world</strong></p>") == "Hello **world**"


def test_unordered_list():
    assert html_to_md("<ul><li>a</li><li>b</li></ul>") == "- a\n- b"


def test_ordered_list_numbers_in_order():
    lines = html_to_md("<ol><li>x</li><li>y</li><li>z</li></ol>").splitlines()
    assert [line.split(".")[0] for line in lines] == ["1", "2", "3"]
    assert [line.split(" ", 1)[1] for line in lines] == ["x", "y", "z"]


def test_scripts_and_styles_removed():
    html = "<html><head><title>t</title><style>body{}</style></head><body><script>alert(1)</script><p>kept</p></body></html>"
    assert html_to_md(html) == "kept"


def test_nav_and_footer_removed():
    html = "<nav>menu</nav><p>content</p><footer>foot</footer>"
    result = html_to_md(html)
    assert "menu" not in result
    assert "foot" not in result
    assert "content" in result


def test_paragraphs_separated_by_blank_line():
    result = html_to_md("<p>one</p><p>two</p>")
    assert result.split("\n\n") == ["one", "two"]


def test_pre_block_preserves_content():
    result = html_to_md("<pre><code>x = 1\n    y = 2</code></pre>")
    assert result.startswith("```")
    assert result.endswith("```")
    assert "x = 1\n    y = 2" in result


def test_table_rows_are_piped():
    html = "<table><tr><th>a</th><th>b</th></tr><tr><td>1</td><td>2</td></tr></table>"
    lines = html_to_md(html).splitlines()
    assert len(lines) == 3
    assert all(line.startswith("|") and line.endswith("|") for line in lines)
    assert lines[0].split("|")[1:-1] == [" a ", " b "]
    assert lines[2].split("|")[1:-1] == [" 1 ", " 2 "]


def test_whitespace_collapsed():
    assert html_to_md("<p>a   \n\n  b</p>") == "a b"