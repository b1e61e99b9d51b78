"""
Tests for Markdown code block and identifier extraction.
"""
from doccov.markdown import (
    MarkdownFile,
    extract_code_blocks,
    extract_function_calls,
    extract_imports,
    extract_method_calls,
    is_code_language,
    load_markdown_dir,
    parse_markdown_files,
)

README = """# Usage

```ts
import { applyTax } from 'pkg';
applyTax(100);
```

```bash
npm install pkg
```

```
client.run();
```
"""


class TestExtractCodeBlocks:
    """Tests for extract_code_blocks."""

    def test_blocks_and_lines(self):
        """start_line is the opening fence line, 1-based."""
        blocks = extract_code_blocks(README)
        assert [b['language'] for b in blocks] == ['ts', 'bash', 'text']
        assert blocks[0]['start_line'] == 3
        assert blocks[0]['end_line'] == 6
        assert blocks[0]['code'] == "import { applyTax } from 'pkg';\napplyTax(100);\n"

    def test_indented_fence_in_list_item(self):
        content = "1. Step one:\n\n   ```ts\n   applyTax(1)\n   ```\n"
        blocks = extract_code_blocks(content)
        assert len(blocks) == 1
        assert blocks[0]['code'] == "applyTax(1)\n"
        assert (blocks[0]['start_line'], blocks[0]['end_line']) == (3, 5)

    def test_tilde_fence_may_contain_backticks(self):
        content = "~~~js\nconst s = `x`;\n```\nrun();\n~~~\n"
        blocks = extract_code_blocks(content)
        assert [b['language'] for b in blocks] == ['js']
        assert blocks[0]['code'] == "const s = `x`;\n```\nrun();\n"

    def test_no_blocks(self):
        assert extract_code_blocks("Just prose.") == []

    def test_code_languages(self):
        assert is_code_language('TypeScript')
        assert is_code_language('text')
        assert not is_code_language('bash')

    def test_markdown_file_filters_non_code(self):
        md = MarkdownFile('README.md', README)
        assert [b['language'] for b in md.code_blocks] == ['ts', 'text']


class TestExtractIdentifiers:
    """Tests for import and call extraction."""

    def test_imports(self):
        code = (
            "import { applyTax, type Cart, formatPrice as fmt } from 'pkg';\n"
            "import Client from 'pkg/client';\n"
            "import * as utils from 'pkg/utils';\n"
        )
        assert extract_imports(code) == ['applyTax', 'Cart', 'formatPrice', 'Client', 'utils']

    def test_function_calls(self):
        code = "const c = new Client();\nconsole.log(applyTax(1));\nif (x) { f(2); }"
        assert extract_function_calls(code) == ['Client', 'applyTax']

    def test_method_calls(self):
        code = "const c = new Client();\nc.run();\nc.stop(1);"
        calls = extract_method_calls(code)
        assert [(c['name'], c['line']) for c in calls] == [('run', 1), ('stop', 2)]
        assert calls[1]['context'] == 'c.stop(1);'


class TestMarkdownFiles:
    """Tests for file loading and coercion."""

    def test_parse_accepts_several_shapes(self):
        files = parse_markdown_files([
            MarkdownFile('a.md', 'A'),
            {'path': 'b.md', 'content': 'B'},
            ('c.md', 'C'),
        ])
        assert [(f.path, f.content) for f in files] == [('a.md', 'A'), ('b.md', 'B'), ('c.md', 'C')]

    def test_load_dir(self, tmp_path):
        """Markdown files load with relative posix paths; ignored dirs are skipped."""
        (tmp_path / 'docs').mkdir()
        (tmp_path / 'docs' / 'guide.md').write_text('# Guide', encoding='utf-8')
        (tmp_path / 'README.mdx').write_text('# Readme', encoding='utf-8')
        (tmp_path / 'notes.txt').write_text('not markdown', encoding='utf-8')
        (tmp_path / 'node_modules').mkdir()
        (tmp_path / 'node_modules' / 'dep.md').write_text('# Dep', encoding='utf-8')

        files = load_markdown_dir(tmp_path)
        assert [f.path for f in files] == ['README.mdx', 'docs/guide.md']

    def test_latin1_fallback(self, tmp_path):
        (tmp_path / 'old.md').write_bytes('caf\xe9'.encode('latin-1'))
        files = load_markdown_dir(tmp_path)
        assert files[0].content == 'café'
