# tests/test_buying.py

from datetime import date

import pytest

from app import db
from app.models import BuyerMetrics, Country, Employee


@pytest.fixture
def buyer(country):
    employee = Employee(name='Alex', role='buyer', country_id=country.id)
    db.session.add(employee)
    db.session.commit()
    return employee


def test_create_derives_figures_from_effective_spend(buyer):
    from app.calculator.buying import create_buyer_metrics

    row = create_buyer_metrics(date(2024, 5, 1), buyer.country_id, buyer.id,
                               spend=100, spend_manual=120, subscriptions=40, dialogs=10, fd_count=3,
                               desk_name='Desk 1')

    assert row.spend == 100
    assert row.cost_per_subscription == pytest.approx(3)
    assert row.cost_per_fd == pytest.approx(40)
    assert row.conversion_rate == pytest.approx(25)
    assert row.payroll_amount == pytest.approx(12)
    assert row.to_dict()['employee_name'] == 'Alex'


def test_duplicate_day_is_rejected(buyer):
    from app.calculator.buying import create_buyer_metrics
    from app.errors import ConflictError

    create_buyer_metrics(date(2024, 5, 1), buyer.country_id, buyer.id, spend=10)
    with pytest.raises(ConflictError):
        create_buyer_metrics(date(2024, 5, 1), buyer.country_id, buyer.id, spend=20)


def test_unknown_references_raise_not_found(buyer):
    from app.calculator.buying import create_buyer_metrics
    from app.errors import NotFoundError

    with pytest.raises(NotFoundError):
        create_buyer_metrics(date(2024, 5, 1), 999, buyer.id)
    with pytest.raises(NotFoundError):
        create_buyer_metrics(date(2024, 5, 1), buyer.country_id, 999)


def test_update_keeps_untouched_inputs(buyer):
    from app.calculator.buying import create_buyer_metrics, update_buyer_metrics

    row = create_buyer_metrics(date(2024, 5, 1), buyer.country_id, buyer.id,
                               spend=100, spend_manual=150, subscriptions=10, fd_count=2)
    row = update_buyer_metrics(row.id, subscriptions=30)
    assert row.spend_manual == 150
    assert row.cost_per_subscription == pytest.approx(5)
    assert row.cost_per_fd == pytest.approx(75)

    # Clearing the manual figure falls back to the collected spend
    row = update_buyer_metrics(row.id, spend_manual=None)
    assert row.payroll_amount == pytest.approx(10)


def test_summary_recomputes_ratios_from_sums(buyer):
    from app.calculator.buying import create_buyer_metrics, list_buyer_metrics, summarize_buyer_metrics

    pl = Country(name='Poland', code='PL', currency='PLN')
    db.session.add(pl)
    db.session.commit()
    create_buyer_metrics(date(2024, 5, 1), buyer.country_id, buyer.id, spend=100, subscriptions=10, fd_count=1)
    create_buyer_metrics(date(2024, 5, 2), buyer.country_id, buyer.id, spend=300, subscriptions=10, fd_count=3)
    create_buyer_metrics(date(2024, 5, 2), pl.id, None, spend=50, subscriptions=0, dialogs=4)

    summary = summarize_buyer_metrics(list_buyer_metrics())

    totals = summary['totals']
    assert totals['spend'] == pytest.approx(450)
    assert totals['payroll_amount'] == pytest.approx(45)
    assert totals['record_count'] == 3
    assert totals['cost_per_subscription'] == pytest.approx(450 / 20)
    assert totals['conversion_rate'] == pytest.approx(4 / 20 * 100)

    by_country = {c['country_name']: c for c in summary['by_country']}
    assert by_country['Ukraine']['cost_per_subscription'] == pytest.approx(20)
    assert by_country['Ukraine']['cost_per_fd'] == pytest.approx(100)
    assert by_country['Poland']['cost_per_subscription'] == 0

    by_buyer = {b['employee_name']: b for b in summary['by_buyer']}
    assert by_buyer['Alex']['employee_id'] == buyer.id
    assert by_buyer['Unassigned']['employee_id'] is None
    assert by_buyer['Unassigned']['spend'] == pytest.approx(50)


def test_summary_of_nothing_is_zero(app_with_db):
    from app.calculator.buying import summarize_buyer_metrics

    summary = summarize_buyer_metrics([])
    assert summary['totals']['spend'] == 0
    assert summary['totals']['cost_per_fd'] == 0
    assert summary['by_country'] == []


def test_buying_api(client, buyer):
    created = client.post('/api/buying', json={'date': '2024-05-01', 'country_id': buyer.country_id,
                                               'employee_id': buyer.id, 'spend': 200, 'subscriptions': 0,
                                               'fd_count': 4, 'platform_name': 'Facebook'})
    assert created.status_code == 201
    row = created.get_json()
    assert row['cost_per_subscription'] == 0
    assert row['cost_per_fd'] == pytest.approx(50)

    assert client.post('/api/buying', json={'spend': 1}).status_code == 400
    assert client.post('/api/buying', json={'date': '2024-05-01', 'country_id': buyer.country_id,
                                            'employee_id': buyer.id}).status_code == 409

    updated = client.put(f"/api/buying/{row['id']}", json={'spend_manual': 400}).get_json()
    assert updated['payroll_amount'] == pytest.approx(40)
    assert updated['platform_name'] == 'Facebook'
    assert updated['date'] == '2024-05-01'

    listed = client.get(f"/api/buying?employee_id={buyer.id}&start_date=2024-05-01").get_json()
    assert [m['id'] for m in listed['metrics']] == [row['id']]
    assert listed['totals']['spend'] == pytest.approx(400)

    summary = client.get('/api/buying/summary?start_date=2024-05-01&end_date=2024-05-31').get_json()
    assert summary['by_buyer'][0]['employee_name'] == 'Alex'

    # A buyer with desk history is deactivated instead of deleted
    assert client.delete(f"/api/employees/{buyer.id}").get_json()['deactivated'] is True

    assert client.delete(f"/api/buying/{row['id']}").get_json() == {'deleted': True}
    assert client.get(f"/api/buying/{row['id']}").status_code == 404
    assert BuyerMetrics.query.count() == 0
