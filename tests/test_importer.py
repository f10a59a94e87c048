# tests/test_importer.py

from datetime import date

import pandas as pd
import pytest

from app.models import DailyMetrics

HEADER = ('date,country_code,spend_trust,spend_crossgif,spend_fbm,revenue_local_priemka,'
          'revenue_usdt_priemka,revenue_local_own,revenue_usdt_own,fd_count,fd_sum_local')


@pytest.fixture
def sheet(tmp_path):
    def _write(body, name='metrics.csv'):
        path = tmp_path / name
        path.write_text(body, encoding='utf-8')
        return str(path)
    return _write


def test_valid_csv_is_imported(country, sheet):
    from app.calculator.validator import import_metrics_dataframe, validate_metrics_file

    path = sheet(f"{HEADER},chatterfy_cost\n"
                 "2024-05-01,ua,100,0,0,0,200,0,0,0,0,\n"
                 "2024-05-02,UA,\"1,000\",0,0,4100,100,0,0,3,0,5\n")

    dataframe, errors = validate_metrics_file(path)
    assert errors == []
    assert import_metrics_dataframe(dataframe) == 2

    first = DailyMetrics.query.filter_by(date=date(2024, 5, 1)).one()
    assert first.total_expenses_usdt == pytest.approx(151)
    assert first.net_profit_math == pytest.approx(49)

    second = DailyMetrics.query.filter_by(date=date(2024, 5, 2)).one()
    assert second.spend_trust == 1000
    assert second.fd_count == 3
    assert second.chatterfy_cost == 5
    assert second.exchange_rate_priemka == pytest.approx(41)


def test_reimport_updates_existing_rows(country, sheet, add_metrics):
    from app.calculator.validator import import_metrics_dataframe, validate_metrics_file

    add_metrics('2024-05-01', country.id, spend_trust=10, payroll_content=15)
    dataframe, errors = validate_metrics_file(sheet(f"{HEADER}\n2024-05-01,UA,100,0,0,0,200,0,0,0,0\n"))
    assert errors == []
    import_metrics_dataframe(dataframe)

    row = DailyMetrics.query.one()
    assert row.spend_trust == 100
    # Columns absent from the sheet keep their stored values
    assert row.payroll_content == 15


def test_missing_columns_are_reported(country, sheet):
    from app.calculator.validator import validate_metrics_file

    dataframe, errors = validate_metrics_file(sheet("date,country_code,spend_trust\n2024-05-01,UA,1\n"))
    assert dataframe is None
    assert len(errors) == 1
    assert 'revenue_usdt_own' in errors[0]


def test_bad_values_are_reported_with_row_numbers(country, sheet):
    from app.calculator.validator import validate_metrics_file

    path = sheet(f"{HEADER}\n"
                 "2024-05-01,UA,abc,0,0,0,0,0,0,0,0\n"
                 "not-a-date,UA,1,0,0,0,0,0,0,0,0\n"
                 "2024-05-03,XX,1,0,0,0,0,0,0,0,0\n")

    dataframe, errors = validate_metrics_file(path)
    assert dataframe is None
    assert any(e.startswith('Row 2:') and 'spend_trust' in e for e in errors)
    assert any(e.startswith('Row 3:') and 'date' in e for e in errors)
    assert any(e.startswith('Row 4:') and 'XX' in e for e in errors)


def test_xlsx_upload_is_read(country, tmp_path):
    from app.calculator.validator import validate_metrics_file

    path = tmp_path / 'metrics.xlsx'
    pd.DataFrame([{
        'date': '2024-05-01', 'country_code': 'UA', 'spend_trust': 100, 'spend_crossgif': 0,
        'spend_fbm': 0, 'revenue_local_priemka': 0, 'revenue_usdt_priemka': 200,
        'revenue_local_own': 0, 'revenue_usdt_own': 0, 'fd_count': 0, 'fd_sum_local': 0,
    }]).to_excel(path, index=False)

    dataframe, errors = validate_metrics_file(str(path))
    assert errors == []
    assert len(dataframe) == 1


def test_unreadable_file_is_reported(app_with_db, tmp_path):
    from app.calculator.validator import validate_metrics_file

    path = tmp_path / 'broken.xlsx'
    path.write_bytes(b'not a spreadsheet')
    dataframe, errors = validate_metrics_file(str(path))
    assert dataframe is None
    assert 'not a readable spreadsheet' in errors[0]
