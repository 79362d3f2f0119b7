import io
import os
import sys
import pandas as pd
import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from rental_tool.data.ingest import (
    build_product, load_products, normalize_header, parse_price, products_from_frame,
    resolve_columns, sample_template, sample_template_bytes,
)
from rental_tool.engine import RawProduct, IngestionError


def test_normalize_header():
    assert normalize_header(" Product  Name ") == "productname"
    assert normalize_header("제 품 명") == "제품명"


@pytest.mark.parametrize("columns, expected", [
    (['제품명', '모델명', '일시불단가'], {'product_name': '제품명', 'model_name': '모델명', 'price': '일시불단가'}),
    (['제 품 명', '모 델 명', '일시불 단가'], {'product_name': '제 품 명', 'model_name': '모 델 명', 'price': '일시불 단가'}),
    (['Product Name', 'MODEL', 'Price'], {'product_name': 'Product Name', 'model_name': 'MODEL', 'price': 'Price'}),
    (['productName', 'modelName', 'price'], {'product_name': 'productName', 'model_name': 'modelName', 'price': 'price'}),
])
def test_resolve_columns_exact(columns, expected):
    assert resolve_columns(columns) == expected


def test_resolve_columns_substring():
    columns = ['No', '렌탈 제품명(국문)', '모델명 코드', '판매 가격(원)']
    assert resolve_columns(columns) == {
        'product_name': '렌탈 제품명(국문)',
        'model_name': '모델명 코드',
        'price': '판매 가격(원)',
    }


def test_resolve_columns_prefers_exact_match():
    # An exact match on a later alias beats a substring match on an earlier one
    columns = ['일시불단가 (VAT 제외)', '단가', '제품명', '모델명']
    assert resolve_columns(columns)['price'] == '단가'

    columns = ['제품 가격 메모', '가격', '제품명', '모델명']
    assert resolve_columns(columns)['price'] == '가격'


def test_resolve_columns_exact_match_claimed_before_substring():
    # 'name' would otherwise take "Model Name" for the product field
    with pytest.raises(IngestionError) as exc_info:
        resolve_columns(['Item', 'Model Name', 'Price'])

    assert exc_info.value.missing_fields == ['product_name']

    assert resolve_columns(['Model Name', 'Item Name', 'Price']) == {
        'product_name': 'Item Name',
        'model_name': 'Model Name',
        'price': 'Price',
    }


def test_resolve_columns_reports_every_missing_field():
    with pytest.raises(IngestionError) as exc_info:
        resolve_columns(['제품명', 'Notes'])

    assert exc_info.value.missing_fields == ['model_name', 'price']
    assert '모델명' in str(exc_info.value)
    assert '일시불단가' in str(exc_info.value)


@pytest.mark.parametrize("value, expected", [
    ("1,200,000", 1200000.0),
    (" 1500000 ", 1500000.0),
    (99000, 99000.0),
    (12.5, 12.5),
    ("-5", -5.0),
    ("", None),
    ("abc", None),
    (None, None),
    (float('nan'), None),
    (True, None),
])
def test_parse_price(value, expected):
    assert parse_price(value) == expected


def test_products_from_frame_skips_and_reports_bad_rows():
    df = pd.DataFrame({
        '제품명': ['에어컨', '냉장고', '', '세탁기', '건조기', '정수기'],
        '모델명': ['AC-2000', 'REF-500', 'X-1', None, 'DRY-9', 'WP-1'],
        '일시불단가': ['1,200,000', '1500000', '900000', '800000', '0', 'call us'],
    })

    report = products_from_frame(df)

    assert report.products == [
        RawProduct('에어컨', 'AC-2000', 1200000.0),
        RawProduct('냉장고', 'REF-500', 1500000.0),
    ]
    assert [i.row_number for i in report.issues] == [4, 5, 6, 7]
    assert "product name" in report.issues[0].reason
    assert "model name" in report.issues[1].reason
    assert "greater than zero" in report.issues[2].reason
    assert "not a number" in report.issues[3].reason
    assert report.warnings[0].startswith("Row 4:")


def test_products_from_frame_no_valid_rows():
    df = pd.DataFrame({'제품명': ['A'], '모델명': ['B'], '일시불단가': ['0']})

    with pytest.raises(IngestionError, match="No valid products"):
        products_from_frame(df)


def test_products_from_frame_empty():
    with pytest.raises(IngestionError, match="no data"):
        products_from_frame(pd.DataFrame(columns=['제품명', '모델명', '일시불단가']))


def test_load_csv_path(tmp_path):
    path = tmp_path / 'products.csv'
    path.write_text(
        'product,model,price\n'
        'Air Conditioner,AC-2000,"1,200,000"\n'
        '\n'
        'Refrigerator,REF-500,1500000\n',
        encoding='utf-8',
    )

    report = load_products(path)

    assert [p.price for p in report.products] == [1200000.0, 1500000.0]
    assert report.column_map == {'product_name': 'product', 'model_name': 'model', 'price': 'price'}


def test_load_csv_bytes_with_bom():
    data = '제품명,모델명,일시불단가\n에어컨,AC-2000,1200000\n'.encode('utf-8-sig')

    report = load_products(data, filename='upload.CSV')

    assert report.products == [RawProduct('에어컨', 'AC-2000', 1200000.0)]


def test_load_xlsx_roundtrip_through_template():
    report = load_products(io.BytesIO(sample_template_bytes()), filename='template.xlsx')

    assert report.products == [
        RawProduct('에어컨', 'AC-2000', 1200000.0),
        RawProduct('냉장고', 'REF-500', 1500000.0),
    ]
    assert report.issues == []


def test_load_xlsx_reads_first_sheet_only(tmp_path):
    path = tmp_path / 'book.xlsx'
    with pd.ExcelWriter(path, engine='openpyxl') as writer:
        pd.DataFrame({'제품명': ['A'], '모델명': ['A-1'], '단가': [1000]}).to_excel(writer, index=False, sheet_name='first')
        pd.DataFrame({'제품명': ['B'], '모델명': ['B-1'], '단가': [2000]}).to_excel(writer, index=False, sheet_name='second')

    report = load_products(path)

    assert report.products == [RawProduct('A', 'A-1', 1000.0)]


def test_load_xlsx_row_numbers_survive_blank_rows(tmp_path):
    path = tmp_path / 'gaps.xlsx'
    pd.DataFrame({
        '제품명': ['A', None, 'C'],
        '모델명': ['A-1', None, 'C-1'],
        '일시불단가': ['100', None, '0'],
    }).to_excel(path, index=False)

    report = load_products(path)

    assert report.products == [RawProduct('A', 'A-1', 100.0)]
    # Header is row 1, A row 2, blank row 3
    assert [(i.row_number, i.reason) for i in report.issues] == [
        (4, 'price must be greater than zero, got 0'),
    ]


def test_load_csv_row_numbers_survive_blank_lines():
    data = '제품명,모델명,일시불단가\nA,A-1,100\n\n\nC,C-1,free\n'.encode('utf-8')

    report = load_products(data, filename='gaps.csv')

    assert [i.row_number for i in report.issues] == [5]
    assert report.warnings == ["Row 5: price is missing or not a number: 'free'"]


def test_load_unsupported_extension():
    with pytest.raises(IngestionError, match="Unsupported file type"):
        load_products(b'hello', filename='notes.txt')


def test_load_without_filename():
    with pytest.raises(IngestionError, match="no file name"):
        load_products(b'a,b,c\n1,2,3\n')


def test_load_missing_file(tmp_path):
    with pytest.raises(IngestionError, match="not found"):
        load_products(tmp_path / 'missing.csv')


def test_load_empty_csv():
    with pytest.raises(IngestionError):
        load_products(b'', filename='empty.csv')


def test_load_corrupt_xlsx():
    with pytest.raises(IngestionError, match="Failed to read file"):
        load_products(b'not really a workbook', filename='broken.xlsx')


def test_load_unrecognized_schema():
    with pytest.raises(IngestionError) as exc_info:
        load_products(b'sku,qty\n1,2\n', filename='orders.csv')

    assert set(exc_info.value.missing_fields) == {'product_name', 'model_name', 'price'}


def test_build_product():
    assert build_product(' 에어컨 ', 'AC-2000', '1,200,000') == RawProduct('에어컨', 'AC-2000', 1200000.0)


@pytest.mark.parametrize("args", [
    ('', 'AC-2000', '1000'),
    ('에어컨', '', '1000'),
    ('에어컨', 'AC-2000', ''),
    ('에어컨', 'AC-2000', 'free'),
    ('에어컨', 'AC-2000', '0'),
    ('에어컨', 'AC-2000', '-10'),
])
def test_build_product_rejects(args):
    with pytest.raises(IngestionError):
        build_product(*args)


def test_sample_template_columns():
    assert list(sample_template().columns) == ['제품명', '모델명', '일시불단가']
