"""Doc block extraction and symbol association tests."""

from __future__ import annotations

import textwrap

from apidocgen.annotations import AnnotationParser
from apidocgen.errors import Phase, Severity
from apidocgen.extraction import AnnotationExtractor, JavaDetector, PhpDetector, TypeScriptDetector
from apidocgen.extraction.extractor import clean_block
from apidocgen.models import SymbolKind


def _extract(text: str, detector, identity: str = "src/Unit"):
    return AnnotationExtractor().extract(identity, textwrap.dedent(text).lstrip("\n"), detector)


PHP_CONTROLLER = r"""
    <?php
    /**
     * @OA\Info(title="Pets", version="1")
     */
    class PetController
    {
        /**
         * @OA\Get(path="/pets")
         */
        #[Route('/pets', methods: ['GET'])]
        public function index() {}

        /** @OA\Property() */
        public ?int $count;
    }
"""


def test_php_blocks_attach_to_following_declarations() -> None:
    blocks, diagnostics = _extract(PHP_CONTROLLER, PhpDetector(), "app/PetController.php")

    assert diagnostics == []
    symbols = [block.symbol for block in blocks]
    assert [(s.kind, s.qualified_name) for s in symbols] == [
        (SymbolKind.TYPE, "PetController"),
        (SymbolKind.METHOD, "PetController.index"),
        (SymbolKind.FIELD, "PetController.count"),
    ]
    assert symbols[1].parent == "PetController"
    assert symbols[2].declared_type == "?int"


def test_block_text_and_span_are_recorded() -> None:
    blocks, _ = _extract(PHP_CONTROLLER, PhpDetector(), "app/PetController.php")

    first = blocks[0]
    assert first.source == "app/PetController.php"
    assert first.text.strip() == '@OA\\Info(title="Pets", version="1")'
    assert (first.span.start_line, first.span.start_column, first.span.end_line) == (2, 1, 4)
    assert blocks[2].text == "@OA\\Property()"


def test_java_annotations_between_block_and_method_are_skipped() -> None:
    source = """
        @RestController
        public class PetController {
            /**
             * @OA\\Get(path="/pets")
             */
            @GetMapping("/pets")
            public List<Pet> list() { return List.of(); }
        }
    """

    blocks, _ = _extract(source, JavaDetector())

    assert len(blocks) == 1
    assert blocks[0].symbol.kind is SymbolKind.METHOD
    assert blocks[0].symbol.qualified_name == "PetController.list"


def test_typescript_optional_field_keeps_declared_type() -> None:
    source = """
        export class CreatePetDto {
          /**
           * @OA\\Property(example="Rex")
           */
          name?: string;
        }
    """

    blocks, _ = _extract(source, TypeScriptDetector())

    symbol = blocks[0].symbol
    assert symbol.kind is SymbolKind.FIELD
    assert symbol.qualified_name == "CreatePetDto.name"
    assert symbol.declared_type == "string"


def test_blocks_without_declaration_are_file_level() -> None:
    source = """
        <?php
        /**
         * @OA\\Server(url="https://api.example.com")
         */

        return [];
    """

    blocks, _ = _extract(source, PhpDetector(), "config/openapi.php")

    assert blocks[0].symbol.kind is SymbolKind.FILE
    assert blocks[0].symbol.qualified_name == "config/openapi.php"


def test_no_detector_means_file_level_blocks() -> None:
    blocks, _ = _extract("/** @OA\\Tag(name=\"pets\") */\nclass Pets {}\n", None, "docs/tags.txt")

    assert [block.symbol.kind for block in blocks] == [SymbolKind.FILE]


def test_banner_comments_are_not_doc_blocks() -> None:
    source = """
        <?php
        /*******************
         * Section banner  *
         *******************/
        /**/
        class Empty {}
    """

    blocks, diagnostics = _extract(source, PhpDetector())

    assert blocks == []
    assert diagnostics == []


def test_unterminated_doc_block_reports_extraction_error() -> None:
    source = """
        <?php
        class Pets {}
        /**
         * @OA\\Get(path="/pets")
    """

    blocks, diagnostics = _extract(source, PhpDetector(), "app/Pets.php")

    assert blocks == []
    assert len(diagnostics) == 1
    diagnostic = diagnostics[0]
    assert diagnostic.phase is Phase.EXTRACT
    assert diagnostic.severity is Severity.ERROR
    assert str(diagnostic.location) == "app/Pets.php:3:1"


def test_clean_block_strips_decoration_only() -> None:
    inner = "\n * @OA\\Get(\n *     path=\"/a\"\n * )\n "

    assert clean_block(inner) == '\n@OA\\Get(\n    path="/a"\n)\n'


def test_parse_errors_point_at_source_columns() -> None:
    source = r"""
        <?php
        /**
         * Pets.
         * @OA\Tag(name=)
         */
        class Pets {}

        /** @OA\Tag(name=) */
        class Cats {}
    """
    blocks, _ = _extract(source, PhpDetector(), "app/Pets.php")
    parser = AnnotationParser()

    locations = [str(parser.parse(block)[1][0].location) for block in blocks]

    assert locations == ["app/Pets.php:4:17", "app/Pets.php:8:18"]


def test_extract_unit_bundles_blocks_with_fingerprint() -> None:
    text = textwrap.dedent(PHP_CONTROLLER).lstrip("\n")

    unit, diagnostics = AnnotationExtractor().extract_unit(
        "app/PetController.php", "fp-1", text, PhpDetector()
    )

    assert diagnostics == []
    assert (unit.identity, unit.fingerprint) == ("app/PetController.php", "fp-1")
    assert [block.symbol.name for block in unit.blocks] == ["PetController", "index", "count"]
