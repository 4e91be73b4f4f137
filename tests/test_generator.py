"""Integration tests for generator behavior."""

from __future__ import annotations

import inspect
import subprocess
import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

from rest_interface_generator.annotations import HttpMethodRegistry
from rest_interface_generator.cli import main
from rest_interface_generator.config import ProtocolVersion
from rest_interface_generator.generator import run_generation
from rest_interface_generator.http_methods import http_method_of
from rest_interface_generator.model_types import AnnotationStyle
from .fixture_helpers import (
    fixture_path,
    import_generated,
    make_configuration,
    parametrize_fixtures,
    unique_package,
)


def _library_files(base: str) -> set[str]:
    root = base.replace(".", "/")
    return {
        f"{root}/__init__.py",
        f"{root}/resource/__init__.py",
        f"{root}/resource/Books.py",
        f"{root}/resource/Authors.py",
        f"{root}/model/__init__.py",
        f"{root}/model/Book.py",
        f"{root}/model/Author.py",
        f"{root}/support/__init__.py",
        f"{root}/support/PATCH.py",
        f"{root}/support/LOCK.py",
        f"{root}/support/ResponseWrapper.py",
    }


@parametrize_fixtures()
def test_generation_smoke(fixture_path: Path, tmp_path: Path) -> None:
    """Each fixture should generate a package tree without crashing."""
    output_dir = tmp_path / fixture_path.stem
    run = run_generation(
        input_path=fixture_path,
        configuration=make_configuration(output_dir, "smoke.api"),
    )

    assert run.generated_files == tuple(sorted(run.generated_files))
    assert all((output_dir / relative).is_file() for relative in run.generated_files)
    assert "smoke/api/resource/__init__.py" in run.generated_files


def test_raml_generation_writes_expected_files(tmp_path: Path) -> None:
    """Resources, schemas, custom verbs and the wrapper each get one module."""
    base = unique_package("library")
    run = run_generation(
        input_path=fixture_path("library.yaml"),
        configuration=make_configuration(tmp_path, base),
    )

    assert set(run.generated_files) == _library_files(base)
    assert run.warnings == ("Unknown schema 'BookList' referenced by Books get 200",)


def test_raml_generated_interfaces_import_and_carry_markers(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Generated protocols import cleanly and expose their verbs and signatures."""
    base = unique_package("library")
    run_generation(
        input_path=fixture_path("library.yaml"),
        configuration=make_configuration(tmp_path, base),
    )

    books = import_generated(monkeypatch, tmp_path, f"{base}.resource.Books").Books
    authors = import_generated(monkeypatch, tmp_path, f"{base}.resource.Authors").Authors

    assert [name for name in vars(books) if not name.startswith("_")] == [
        "Sort",
        "get",
        "post",
        "get_by_book_id",
        "patch_by_book_id",
        "get_by_book_id_authors",
    ]
    assert books.__doc__ == "The library catalogue."
    assert [member.value for member in books.Sort] == ["title", "published"]
    assert list(inspect.signature(books.get).parameters) == ["self", "sort", "limit"]
    assert list(inspect.signature(books.patch_by_book_id).parameters) == [
        "self",
        "book_id",
        "entity",
    ]
    assert http_method_of(books.get) == "GET"
    assert http_method_of(books.post) == "POST"
    assert http_method_of(books.patch_by_book_id) == "PATCH"
    assert http_method_of(authors.lock) == "LOCK"
    assert books.patch_by_book_id.__annotations__["return"] == "None"
    assert books.post.__annotations__["return"] == "ResponseWrapper"
    assert "Author" in (books.get_by_book_id_authors.__doc__ or "")


def test_raml_generated_value_types_validate(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Schema-derived models enforce required and forbidden fields."""
    base = unique_package("library")
    run_generation(
        input_path=fixture_path("library.yaml"),
        configuration=make_configuration(tmp_path, base),
    )

    book_type = import_generated(monkeypatch, tmp_path, f"{base}.model.Book").Book
    author_type = import_generated(monkeypatch, tmp_path, f"{base}.model.Author").Author

    book = book_type.model_validate({"title": "Dune", "publisher": {"name": "Chilton"}})
    assert book.publisher.name == "Chilton"
    assert book.tags is None
    with pytest.raises(ValidationError):
        book_type.model_validate({"isbn": "123"})
    with pytest.raises(ValidationError):
        book_type.model_validate({"title": "Dune", "pages": 412})
    with pytest.raises(ValidationError):
        author_type.model_validate({"born": 1920})


def test_openapi_generation(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """OpenAPI component schemas keep their names and inline schemas get method names."""
    base = unique_package("petstore")
    root = base.replace(".", "/")
    run = run_generation(
        input_path=fixture_path("petstore.yaml"),
        configuration=make_configuration(tmp_path, base),
    )

    assert set(run.generated_files) == {
        f"{root}/__init__.py",
        f"{root}/resource/__init__.py",
        f"{root}/resource/Pets.py",
        f"{root}/model/__init__.py",
        f"{root}/model/Pet.py",
        f"{root}/model/PetsGet200.py",
        f"{root}/support/__init__.py",
        f"{root}/support/ResponseWrapper.py",
    }
    assert run.warnings == ()

    pets = import_generated(monkeypatch, tmp_path, f"{base}.resource.Pets").Pets
    assert list(inspect.signature(pets.get).parameters) == ["self", "status", "limit"]
    assert list(inspect.signature(pets.delete_by_pet_id).parameters) == ["self", "pet_id"]
    assert pets.get_by_pet_id.__annotations__["pet_id"] == "int"
    assert http_method_of(pets.delete_by_pet_id) == "DELETE"

    pet_list = import_generated(monkeypatch, tmp_path, f"{base}.model.PetsGet200").PetsGet200
    parsed = pet_list.model_validate([{"id": 1, "name": "Rex", "tag": None}])
    assert parsed.root[0].name == "Rex"


def test_dataclass_annotation_style(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Dataclass style generates plain dataclasses for schema types."""
    base = unique_package("petstore")
    run_generation(
        input_path=fixture_path("petstore.yaml"),
        configuration=make_configuration(
            tmp_path,
            base,
            annotation_style=AnnotationStyle.DATACLASS,
            protocol_version=ProtocolVersion.V1,
        ),
    )

    pet_type = import_generated(monkeypatch, tmp_path, f"{base}.model.Pet").Pet
    pet = pet_type(id=1, name="Rex")
    assert pet.tag is None
    wrapper = import_generated(
        monkeypatch, tmp_path, f"{base}.support.ResponseWrapper"
    ).ResponseWrapper
    assert wrapper(200, pet).entity is pet


def test_shared_registry_across_runs(tmp_path: Path) -> None:
    """PATCH and LOCK are synthesized once each for runs sharing a registry."""
    registry = HttpMethodRegistry()
    for name in ("first", "second"):
        run = run_generation(
            input_path=fixture_path("library.yaml"),
            configuration=make_configuration(tmp_path / name, "shared.api"),
            http_methods=registry,
        )
        assert "shared/api/support/PATCH.py" in run.generated_files

    assert registry.synthesized_count == 2


def test_generation_invokes_ruff_formatting(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Generation should run ruff formatting on emitted files when asked to."""
    captured: dict[str, Path] = {}

    def _fake_format(*, output_dir: Path, relative_paths: set[str]) -> None:
        captured["output_dir"] = output_dir

    monkeypatch.setattr(
        "rest_interface_generator.context.format_generated_files",
        _fake_format,
    )

    run_generation(
        input_path=fixture_path("petstore.yaml"),
        configuration=make_configuration(tmp_path, "formatted.api", format_output=True),
    )
    assert captured == {"output_dir": tmp_path}


def test_generated_modules_pass_ruff_check(tmp_path: Path) -> None:
    """Generated modules should pass the default ruff checks."""
    run = run_generation(
        input_path=fixture_path("library.yaml"),
        configuration=make_configuration(tmp_path, "linted.api", format_output=True),
    )

    lint = subprocess.run(
        [
            sys.executable,
            "-m",
            "ruff",
            "check",
            *(str(tmp_path / relative) for relative in run.generated_files),
        ],
        check=False,
        capture_output=True,
        text=True,
    )
    details = f"{lint.stdout}\n{lint.stderr}".strip()
    assert lint.returncode == 0, details


def test_cli_help_screen() -> None:
    """Running the CLI help should succeed and print usage information."""
    result = subprocess.run(
        [sys.executable, "-m", "rest_interface_generator", "--help"],
        check=False,
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "usage:" in result.stdout.lower()


def test_cli_prints_generated_files(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """The CLI lists warnings, then every generated file."""
    exit_code = main(
        [
            "--input",
            str(fixture_path("library.yaml")),
            "--output",
            str(tmp_path),
            "--base-package",
            "cli.api",
            "--protocol-version",
            "v1",
        ]
    )

    lines = capsys.readouterr().out.splitlines()
    assert exit_code == 0
    assert lines[0].startswith("Warning: Unknown schema 'BookList'")
    assert set(lines[1:]) == _library_files("cli.api")


@pytest.mark.parametrize(
    "extra_args",
    [
        ["--base-package", "not valid"],
        ["--base-package", "cli.api", "--input", "missing.yaml"],
    ],
)
def test_cli_reports_errors(tmp_path: Path, extra_args: list[str]) -> None:
    """Invalid configuration and unreadable inputs exit with status 2."""
    argv = ["--input", str(fixture_path("library.yaml")), "--output", str(tmp_path), *extra_args]

    with pytest.raises(SystemExit) as excinfo:
        main(argv)

    assert excinfo.value.code == 2
