"""
Product Ingestion - turns an uploaded spreadsheet into RawProducts.

- Reads xlsx/xls/csv (path, bytes or file-like) with pandas, first sheet only
- Resolves product name / model name / price columns from an alias table
- Coerces price text ("1,200,000") to numbers
- Skips unusable rows and reports why
"""
import io
import logging
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from ..engine.errors import IngestionError
from ..engine.models import RawProduct

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ('.xlsx', '.xls', '.csv')

# Logical field -> accepted header spellings, most specific first
COLUMN_ALIASES = {
    'product_name': ['제품명', '제 품 명', '상품명', '제품', '품명', 'productName', 'product name', 'product', 'name'],
    'model_name': ['모델명', '모 델 명', '모델', 'modelName', 'model name', 'model'],
    'price': ['일시불단가', '일시불 단가', '단가', '가격', '일시불', 'price'],
}

FIELD_LABELS = {
    'product_name': '제품명',
    'model_name': '모델명',
    'price': '일시불단가',
}

# Headers of the downloadable sample sheet
TEMPLATE_COLUMNS = ['제품명', '모델명', '일시불단가']

Source = Union[str, Path, bytes, io.IOBase]


@dataclass
class RowIssue:
    """A source row left out of the product list."""
    row_number: int
    reason: str


@dataclass
class IngestionReport:
    """Products read from a source plus what was skipped."""
    products: list[RawProduct]
    issues: list[RowIssue] = field(default_factory=list)
    column_map: dict[str, str] = field(default_factory=dict)

    @property
    def warnings(self) -> list[str]:
        return [f"Row {i.row_number}: {i.reason}" for i in self.issues]


def normalize_header(name) -> str:
    """Lowercase and drop all whitespace."""
    return re.sub(r'\s+', '', str(name)).lower()


def _match(aliases, normalized, column_map, exact):
    for field_name in aliases:
        if field_name in column_map:
            continue
        taken = set(column_map.values())
        for alias in aliases[field_name]:
            key = normalize_header(alias)
            match = next(
                (col for col, norm in normalized
                 if col not in taken and (norm == key if exact else key in norm)),
                None,
            )
            if match is not None:
                column_map[field_name] = match
                break


def resolve_columns(columns, aliases: Optional[dict] = None) -> dict[str, str]:
    """
    Map each logical field to a source column.

    Every field gets its exact (normalized) match before any field falls
    back to substring matching, so "Model Name" is never claimed by a
    loose product alias. Aliases are tried in order. Raises IngestionError
    naming every field not found.
    """
    aliases = aliases or COLUMN_ALIASES
    normalized = [(col, normalize_header(col)) for col in columns]
    column_map = {}

    _match(aliases, normalized, column_map, exact=True)
    _match(aliases, normalized, column_map, exact=False)
    column_map = {f: column_map[f] for f in aliases if f in column_map}

    missing = [f for f in aliases if f not in column_map]
    if missing:
        labels = [FIELD_LABELS.get(f, f) for f in missing]
        raise IngestionError(
            f"Required column(s) not found: {', '.join(labels)}. "
            f"Columns in file: {', '.join(str(c) for c in columns)}",
            missing_fields=missing,
        )

    logger.debug("Column mapping: %s", column_map)
    return column_map


def parse_price(value) -> Optional[float]:
    """
    Coerce a price cell to a float.

    Strips thousands separators and whitespace. Returns None for empty or
    unparseable cells, leaving the sign check to the caller.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).replace(',', '').strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _cell_text(value) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ''
    return str(value).strip()


def products_from_frame(df: pd.DataFrame, aliases: Optional[dict] = None) -> IngestionReport:
    """Map a raw DataFrame onto RawProducts, skipping and reporting bad rows."""
    if df is None or df.empty:
        raise IngestionError("The file contains no data rows.")

    column_map = resolve_columns(list(df.columns), aliases)
    products = []
    issues = []

    # Header is spreadsheet row 1; the index survives dropped blank rows
    for index, row in df.iterrows():
        row_number = index + 2
        product_name = _cell_text(row[column_map['product_name']])
        model_name = _cell_text(row[column_map['model_name']])
        raw_price = row[column_map['price']]
        price = parse_price(raw_price)

        if not product_name:
            issues.append(RowIssue(row_number, "product name is empty"))
            continue
        if not model_name:
            issues.append(RowIssue(row_number, "model name is empty"))
            continue
        if price is None:
            issues.append(RowIssue(row_number, f"price is missing or not a number: {_cell_text(raw_price)!r}"))
            continue
        if price <= 0:
            issues.append(RowIssue(row_number, f"price must be greater than zero, got {price:g}"))
            continue

        products.append(RawProduct(product_name=product_name, model_name=model_name, price=price))

    for issue in issues:
        logger.warning("Skipped row %d: %s", issue.row_number, issue.reason)

    if not products:
        raise IngestionError(
            "No valid products found. Check the column names and that prices are positive numbers."
        )

    logger.info("Ingested %d product(s), skipped %d row(s)", len(products), len(issues))
    return IngestionReport(products=products, issues=issues, column_map=column_map)


def _extension(source: Source, filename: Optional[str]) -> str:
    name = filename
    if name is None and isinstance(source, (str, Path)):
        name = str(source)
    if name is None:
        name = getattr(source, 'name', None)
    if not name:
        raise IngestionError("Cannot tell the file type: no file name given.")
    return Path(str(name)).suffix.lower()


def read_table(source: Source, filename: Optional[str] = None) -> pd.DataFrame:
    """
    Read the first sheet of a spreadsheet, or a CSV file, into a DataFrame.

    All cells are read as text so prices keep their separators until
    parse_price handles them.
    """
    ext = _extension(source, filename)
    if ext not in SUPPORTED_EXTENSIONS:
        raise IngestionError(f"Unsupported file type '{ext}'. Supported: xlsx, xls, csv.")

    if isinstance(source, bytes):
        source = io.BytesIO(source)

    try:
        if ext == '.csv':
            df = pd.read_csv(source, dtype=str, skip_blank_lines=False, encoding='utf-8-sig')
        else:
            sheets = pd.read_excel(source, sheet_name=None, dtype=str)
            if not sheets:
                raise IngestionError("The workbook has no sheets.")
            df = next(iter(sheets.values()))
    except IngestionError:
        raise
    except FileNotFoundError as e:
        raise IngestionError(f"File not found: {e.filename}") from e
    except pd.errors.EmptyDataError as e:
        raise IngestionError("The file is empty.") from e
    except Exception as e:
        raise IngestionError(f"Failed to read file: {e}") from e

    df = df.dropna(how='all')
    logger.debug("Read %d row(s) with columns %s", len(df), list(df.columns))
    return df


def load_products(source: Source, filename: Optional[str] = None,
                  aliases: Optional[dict] = None) -> IngestionReport:
    """Read a spreadsheet/CSV and return the products it contains."""
    df = read_table(source, filename)
    return products_from_frame(df, aliases)


def build_product(product_name: str, model_name: str, price_text) -> RawProduct:
    """
    Build one product from the manual entry form.

    All three fields are required and the price must parse to a number > 0.
    """
    product_name = _cell_text(product_name)
    model_name = _cell_text(model_name)

    if not product_name or not model_name or _cell_text(price_text) == '':
        raise IngestionError("Fill in product name, model name and price.")

    price = parse_price(price_text)
    if price is None or price <= 0:
        raise IngestionError(f"Enter a valid price greater than zero (got {price_text!r}).")

    return RawProduct(product_name=product_name, model_name=model_name, price=price)


def sample_template() -> pd.DataFrame:
    """Example sheet showing the expected columns."""
    return pd.DataFrame(
        [
            {'제품명': '에어컨', '모델명': 'AC-2000', '일시불단가': 1200000},
            {'제품명': '냉장고', '모델명': 'REF-500', '일시불단가': 1500000},
        ],
        columns=TEMPLATE_COLUMNS,
    )


def sample_template_bytes() -> bytes:
    """Sample sheet as an .xlsx workbook."""
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        sample_template().to_excel(writer, index=False, sheet_name='제품목록')
    return buffer.getvalue()
