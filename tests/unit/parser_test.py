"""Unit tests for the docblock parser."""

import re

import pytest

from docast import DocastError, DocastSyntaxError, Options, parse
from docast.core.parser import Parser
from docast.core.transforms import walk
from docast.models import BlockTag, Code, Comment, Description, InlineTag, Point, Root, SourceFile, Text, TypeExpression


def _tags(tree: Root) -> list[BlockTag]:
    return [node for node, _ in walk(tree) if isinstance(node, BlockTag)]


def _tag(tree: Root, name: str) -> BlockTag:
    return next(tag for tag in _tags(tree) if tag.name == name)


class TestStructure:
    """Tests for the shape of the parsed tree."""

    def test_empty_document(self) -> None:
        """A document without comments is an empty root."""
        tree = parse("")
        assert tree.to_dict() == {"type": "root", "children": []}

    def test_comments(self, sample_file: SourceFile) -> None:
        """Every docblock becomes a comment under the root."""
        tree = parse(sample_file)
        assert [child.type for child in tree.children] == ["comment", "comment"]
        assert all(isinstance(child, Comment) and child.code is None for child in tree.children)

    def test_comment_with_tags_only(self, sample_file: SourceFile) -> None:
        """Block tags without a description."""
        comment = parse(sample_file).children[0]
        assert isinstance(comment, Comment)
        assert [(child.type, child.name) for child in comment.children] == [("blockTag", "file"), ("blockTag", "module")]
        assert [child.children for child in comment.children] == [
            [Text(value="Sample", position=comment.children[0].children[0].position)],
            [Text(value="sample", position=comment.children[1].children[0].position)],
        ]

    def test_description_and_tags(self, sample_file: SourceFile) -> None:
        """A description comes first, followed by block tags in order."""
        comment = parse(sample_file).children[1]
        assert isinstance(comment, Comment)
        assert [child.type for child in comment.children] == ["description", *["blockTag"] * 5]
        assert [child.tag for child in comment.children[1:]] == ["@see", "@param", "@param", "@return", "@example"]

        description = comment.children[0]
        assert isinstance(description, Description)
        assert description.children[0].type == "paragraph"
        assert description.children[0].children[0].value == "Adds two numbers."

    def test_type_expression(self, sample_file: SourceFile) -> None:
        """The braces around a type expression are not part of its value."""
        param = _tag(parse(sample_file), "param")
        assert isinstance(param.children[0], TypeExpression)
        assert param.children[0].value == "number"
        assert param.children[1] == Text(value="a - First operand", position=param.children[1].position)

    def test_multi_line_type_expression(self) -> None:
        """Continuation delimiters are removed from type expressions."""
        tree = parse("/**\n * @type {{\n *   a: number\n * }}\n */")
        assert _tag(tree, "type").children[0].value == "{\n a: number\n}"

    def test_paragraphs_unwrapped_in_block_tags(self, sample_file: SourceFile) -> None:
        """Block tag content is inline nodes, not paragraphs."""
        returns = _tag(parse(sample_file), "return")
        assert [child.type for child in returns.children] == [
            "typeExpression",
            "text",
            "inlineCode",
            "text",
            "inlineCode",
        ]

    def test_inline_tag(self, sample_file: SourceFile) -> None:
        """{@link ...} becomes an inline tag node."""
        see = _tag(parse(sample_file), "see")
        assert len(see.children) == 1
        tag = see.children[0]
        assert isinstance(tag, InlineTag)
        assert (tag.tag, tag.name, tag.value) == ("@link", "link", "https://example.com docs")

    def test_block_tag_without_content(self) -> None:
        """A bare block tag has no children."""
        tag = _tag(parse("/** @internal */"), "internal")
        assert tag.children == []


class TestPositions:
    """Tests for node positions in the source document."""

    def test_comment_position(self, sample_file: SourceFile) -> None:
        """Comments span from opener to closer."""
        comment = parse(sample_file).children[1]
        assert comment.position is not None
        assert comment.position.start == Point(line=6, column=1, offset=sample_file.value.index("/**\n * Adds"))
        assert (comment.position.end.line, comment.position.end.column) == (17, 4)

    def test_text_position(self, sample_file: SourceFile) -> None:
        """Markdown node positions point into the source file."""
        description = parse(sample_file).children[1].children[0]
        text = description.children[0].children[0]
        offset = sample_file.value.index("Adds two numbers.")
        assert text.position.start == Point(line=7, column=4, offset=offset)
        assert text.position.end == Point(line=7, column=21, offset=offset + len("Adds two numbers."))

    def test_block_tag_position(self, sample_file: SourceFile) -> None:
        """Block tags span from the tag to the end of their content."""
        param = _tag(parse(sample_file), "param")
        assert param.position is not None
        assert (param.position.start.line, param.position.start.column) == (11, 4)
        assert (param.position.end.line, param.position.end.column) == (11, 37)
        type_expression = param.children[0]
        assert (type_expression.position.start.column, type_expression.position.end.column) == (11, 19)

    def test_inline_tag_position(self, sample_file: SourceFile) -> None:
        """Inline tags cover the braces."""
        tag = _tag(parse(sample_file), "see").children[0]
        offset = sample_file.value.index("{@link")
        assert tag.position.start == Point(line=9, column=9, offset=offset)
        assert tag.position.end == Point(line=9, column=41, offset=offset + 32)

    def test_code_position(self, sample_file: SourceFile) -> None:
        """Code blocks span the markdown token."""
        code = _tag(parse(sample_file), "example").children[0]
        assert isinstance(code, Code)
        assert code.value == "add(1, 2) // 3"
        assert (code.position.start.line, code.position.start.column) == (16, 5)
        assert (code.position.end.line, code.position.end.column) == (16, 19)

    def test_start_option(self) -> None:
        """Positions honour the start point of a sliced document."""
        tree = parse("/** Hi */", Options(start=Point(line=10, column=3, offset=100)))
        comment = tree.children[0]
        text = comment.children[0].children[0].children[0]
        assert comment.position.start == Point(line=10, column=3, offset=100)
        assert text.position.start == Point(line=10, column=7, offset=104)

    def test_start_option_alias(self) -> None:
        """The start point may be passed as "from"."""
        options = Options.model_validate({"from": {"line": 2, "column": 1, "offset": 5}})
        assert options.start == Point(line=2, column=1, offset=5)


class TestCodeblocks:
    """Tests for the codeblocks option."""

    def test_example_is_code_by_default(self, sample_file: SourceFile) -> None:
        """@example content is parsed as code."""
        assert _tag(parse(sample_file), "example").children[0].type == "code"

    def test_disabled(self, sample_file: SourceFile) -> None:
        """With no codeblocks, @example content is markdown."""
        example = _tag(parse(sample_file, Options(codeblocks=None)), "example")
        assert [child.type for child in example.children] == ["text"]
        assert example.children[0].value == "add(1, 2) // 3"

    @pytest.mark.parametrize(
        "codeblocks",
        ["example", "@example", re.compile(r"^exam"), ["see", "example"]],
        ids=["name", "tag", "pattern", "list"],
    )
    def test_matching(self, sample_file: SourceFile, codeblocks: object) -> None:
        """Tags match by name, by @tag or by pattern."""
        tree = parse(sample_file, Options(codeblocks=codeblocks))
        assert _tag(tree, "example").children[0].type == "code"

    def test_other_tags(self, sample_file: SourceFile) -> None:
        """Only the listed tags are code."""
        tree = parse(sample_file, Options(codeblocks=["see"]))
        assert _tag(tree, "see").children[0] == Code(
            value="{@link https://example.com docs}", position=_tag(tree, "see").children[0].position
        )
        assert _tag(tree, "example").children[0].type == "text"

    def test_fenced_content_is_not_fenced_again(self) -> None:
        """Content that already starts with a fence keeps its language."""
        tree = parse("/**\n * @example\n * ```ts\n * foo()\n * ```\n */")
        code = _tag(tree, "example").children[0]
        assert isinstance(code, Code)
        assert (code.lang, code.value) == ("ts", "foo()")

    def test_description_is_never_code(self) -> None:
        """Codeblocks only apply to block tags."""
        tree = parse("/** example */", Options(codeblocks=re.compile("example")))
        assert tree.children[0].children[0].children[0].type == "paragraph"


class TestErrors:
    """Tests for syntax errors."""

    def test_token_outside_comment_structure(self) -> None:
        """A type expression cannot follow the opener."""
        with pytest.raises(DocastSyntaxError, match="unexpected typeExpression token in comment") as exc_info:
            parse("/** {type} text */")
        assert exc_info.value.point == Point(line=1, column=5, offset=4)
        assert str(exc_info.value).startswith("1:5: ")

    def test_two_type_expressions(self) -> None:
        """A block tag has at most one type expression."""
        with pytest.raises(DocastSyntaxError, match="more than one type expression"):
            parse("/** @param {a} {b} x */")

    def test_unterminated_comment(self) -> None:
        """A comment that runs into the end of the document is an error."""
        with pytest.raises(DocastSyntaxError, match="unterminated comment") as exc_info:
            parse("/** @param {a */ }")
        assert exc_info.value.point == Point(line=1, column=1, offset=0)

    def test_errors_are_value_errors(self) -> None:
        """Syntax errors can be caught as DocastError or ValueError."""
        with pytest.raises(DocastError):
            parse("/** {type} */")
        with pytest.raises(ValueError):
            parse("/** {type} */")


class TestTransforms:
    """Tests for user transforms."""

    def test_transforms_run_in_order(self) -> None:
        """Each transform receives the finished tree, in list order."""
        calls: list[tuple[str, int]] = []

        def first(tree: Root) -> None:
            calls.append(("first", len(tree.children)))

        def second(tree: Root) -> None:
            calls.append(("second", len(tree.children)))

        parse("/** a */ /** b */", Options(transforms=[first, second]))
        assert calls == [("first", 2), ("second", 2)]

    def test_transforms_mutate_tree(self) -> None:
        """Changes made by a transform are visible in the result."""

        def drop_comments(tree: Root) -> None:
            tree.children = []

        assert parse("/** a */", Options(transforms=[drop_comments])).children == []

    def test_transform_errors_propagate(self) -> None:
        """A failing transform aborts the parse."""

        def fail(tree: Root) -> None:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            parse("/** a */", Options(transforms=[fail]))


class TestParserClass:
    """Tests for the Parser entry point."""

    def test_multiline(self) -> None:
        """Block comments are parsed when multiline is set."""
        parser = Parser("/* plain */", Options(multiline=True))
        assert parser.document == "/* plain */"
        assert len(parser.parse().children) == 1

    def test_unknown_option(self) -> None:
        """Options reject unknown fields."""
        with pytest.raises(ValueError):
            Options(unknown=True)  # type: ignore[call-arg]
