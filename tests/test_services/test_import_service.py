# tests/test_services/test_import_service.py
import pytest

from core.exceptions import BulkImportError
from core.models.state import BookDraft
from core.services.import_service import (
    parse_bulk_file, parse_bulk_path, parse_csv, parse_json, validate_imported_book,
)
from core.state.books import import_books


CSV_TEXT = (
    'Title,Author,ISBN,Genres,EstimatedValue,MinAge,Summary\n'
    'Dune,Frank Herbert,9780441013593,Sci-Fi|Classic,499.5,14,Desert planet\n'
    '\n'
    '"Godaan, A Novel",Premchand,,Classic,not a number,,\n'
    ',Nobody,,,,,\n'
)


def test_parse_csv_maps_headers_and_values():
    """Test that CSV rows become records with camelCase keys, lists and numbers."""
    records = parse_csv(CSV_TEXT)
    assert len(records) == 3
    dune = records[0]
    assert dune == {
        'title': 'Dune', 'author': 'Frank Herbert', 'isbn': '9780441013593',
        'genres': ['Sci-Fi', 'Classic'], 'estimatedValue': 499.5, 'minAge': 14,
        'summary': 'Desert planet',
    }


def test_parse_csv_quoted_fields_and_bad_numbers():
    """Test quoted commas and that unparseable numbers become zero."""
    godaan = parse_csv(CSV_TEXT)[1]
    assert godaan['title'] == 'Godaan, A Novel'
    assert godaan['estimatedValue'] == 0
    assert godaan['minAge'] == 0
    assert godaan['isbn'] == ''


def test_parse_csv_short_rows_and_infinite_numbers():
    """Test that missing columns are omitted and non-finite numbers become zero."""
    records = parse_csv('title,author,totalPages,tags\nOnly Title\nA,B,inf\n')
    assert records[0] == {'title': 'Only Title', 'totalPages': 0, 'tags': []}
    assert records[1]['totalPages'] == 0


def test_parse_csv_empty_text():
    assert parse_csv('') == []
    assert parse_csv('title,author\n') == []


def test_csv_import_only_keeps_complete_rows(family_state, now):
    """Test that importing a CSV adds exactly the rows with a title and author."""
    records = parse_csv(CSV_TEXT)
    assert [validate_imported_book(r) for r in records] == [True, True, False]
    state = import_books(family_state, records, now=now)
    added = state.books[len(family_state.books):]
    assert [b.title for b in added] == ['Dune', 'Godaan, A Novel']
    assert added[0].genres == ['Sci-Fi', 'Classic']
    assert added[0].estimated_value == 499.5


def test_parse_json_wraps_single_object():
    """Test that a single JSON object becomes a one-record list."""
    assert parse_json('{"title": "Dune", "author": "Frank Herbert"}') == [
        {'title': 'Dune', 'author': 'Frank Herbert'}
    ]
    assert len(parse_json('[{"title": "A"}, {"title": "B"}]')) == 2


def test_parse_json_invalid():
    with pytest.raises(BulkImportError) as exc_info:
        parse_json('[{"title": ')
    assert 'Invalid JSON' in str(exc_info.value)


def test_parse_bulk_file_by_extension():
    """Test that the file extension picks the parser, case-insensitively."""
    assert parse_bulk_file('books.JSON', '[]') == []
    assert parse_bulk_file('books.csv', 'title,author\nA,B\n') == [{'title': 'A', 'author': 'B'}]
    with pytest.raises(BulkImportError) as exc_info:
        parse_bulk_file('books.xlsx', '')
    assert 'Unsupported file format' in str(exc_info.value)


def test_parse_bulk_path(tmp_path):
    """Test reading an import file from disk, including a byte order mark."""
    path = tmp_path / 'books.csv'
    path.write_text('\ufefftitle,author\nDune,Frank Herbert\n', encoding='utf-8')
    assert parse_bulk_path(path) == [{'title': 'Dune', 'author': 'Frank Herbert'}]


def test_parse_bulk_file_strips_byte_order_mark():
    """Test that CSV text with a byte order mark still has a usable title column."""
    records = parse_bulk_file('books.csv', '\ufeffTitle,Author\nDune,Frank Herbert\n')
    assert records == [{'title': 'Dune', 'author': 'Frank Herbert'}]
    assert validate_imported_book(records[0])


def test_parse_bulk_path_missing_file(tmp_path):
    with pytest.raises(BulkImportError):
        parse_bulk_path(tmp_path / 'missing.csv')


@pytest.mark.parametrize('record, expected', [
    ({'title': 'A', 'author': 'B'}, True),
    ({'title': ' ', 'author': 'B'}, False),
    ({'title': 'A'}, False),
    ({'title': 'A', 'author': None}, False),
    (BookDraft(title='A', author='B'), True),
    (BookDraft(title='A'), False),
    (['A', 'B'], False),
])
def test_validate_imported_book(record, expected):
    assert validate_imported_book(record) is expected
