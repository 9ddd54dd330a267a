import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from mediaman import Book, Genre, MediaCollection, Movie  # noqa: E402


@pytest.fixture
def dune() -> Book:
    return Book(name="Dune", author="Herbert", genre=Genre.FICTION, pages=412)


@pytest.fixture
def alien() -> Movie:
    return Movie(name="Alien", director="Scott", genre="Horror", duration=117)


@pytest.fixture
def scifi(dune: Book) -> MediaCollection:
    return MediaCollection.create("book", name="Sci-Fi").add(dune)
