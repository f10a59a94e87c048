# ==============================================================================
# app/calculator/validator.py
# ------------------------------------------------------------------------------
# Validates an uploaded daily metrics sheet (.xlsx or .csv) and imports it.
# ==============================================================================

import os
import logging
import pandas as pd

from app import db
from app.calculator.daily import upsert_daily_metrics
from app.models import Country
from .schema import EXPECTED_COLUMNS


def _read_sheet(filepath):
    if os.path.splitext(filepath)[1].lower() == '.csv':
        return pd.read_csv(filepath)
    return pd.read_excel(filepath)


def validate_metrics_file(filepath):
    """
    Validates the structure and basic data types of an uploaded metrics sheet.

    Args:
        filepath (str): The path to the uploaded .xlsx or .csv file.

    Returns:
        tuple: A tuple containing:
            - DataFrame: The cleaned rows if validation is successful.
            - list: A list of human-readable error messages if validation fails.
    """
    errors = []

    try:
        df = _read_sheet(filepath)
    except Exception as e:
        errors.append(f"The file is not a readable spreadsheet. Technical error: {e}")
        return None, errors

    # 1. Check for required columns
    missing_columns = [col for col in EXPECTED_COLUMNS['required_columns'] if col not in df.columns]
    if missing_columns:
        errors.append(f"Missing required columns: {', '.join(missing_columns)}")
        return None, errors

    for col in EXPECTED_COLUMNS['optional_columns']:
        if col not in df.columns:
            df[col] = None

    # 2. Check numeric columns for non-numeric values
    for col in EXPECTED_COLUMNS['numeric_columns']:
        # Coerce to numeric, making non-numbers NaN
        numeric_series = pd.to_numeric(df[col].astype(str).str.replace(',', ''), errors='coerce')
        invalid_rows = df[numeric_series.isna() & df[col].notna()]
        for index in invalid_rows.index:
            errors.append(f"Row {index + 2}: value '{invalid_rows.loc[index, col]}' "
                          f"in column '{col}' must be a number.")
        df[col] = numeric_series.where(df[col].notna(), None)

    # 3. Check dates
    dates = pd.to_datetime(df['date'], errors='coerce')
    for index in df[dates.isna()].index:
        errors.append(f"Row {index + 2}: '{df.loc[index, 'date']}' is not a valid date.")
    df['date'] = dates.dt.date

    # 4. Check country codes against the database
    df['country_code'] = df['country_code'].astype(str).str.strip().str.upper()
    known_codes = {c.code for c in Country.query.all()}
    for index in df[~df['country_code'].isin(known_codes)].index:
        errors.append(f"Row {index + 2}: unknown country code '{df.loc[index, 'country_code']}'.")

    if errors:
        return None, errors

    return df, []


def _row_inputs(row):
    inputs = {}
    for col in EXPECTED_COLUMNS['numeric_columns']:
        value = row[col]
        if value is None or pd.isna(value):
            continue
        inputs[col] = int(value) if col in EXPECTED_COLUMNS['integer_columns'] else float(value)
    return inputs


def import_metrics_dataframe(df):
    """
    Upserts every validated row in a single database transaction.

    Returns:
        int: The number of rows written.
    """
    countries = {c.code: c.id for c in Country.query.all()}
    try:
        for _, row in df.iterrows():
            upsert_daily_metrics(row['date'], countries[row['country_code']], _row_inputs(row), commit=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logging.error("Metrics import failed and was rolled back", exc_info=True)
        raise
    logging.info(f"Imported {len(df)} daily metric rows")
    return len(df)
