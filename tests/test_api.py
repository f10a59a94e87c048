# tests/test_api.py

import io

import pytest


def _create_country(client, code='UA'):
    response = client.post('/api/countries', json={'name': 'Ukraine', 'code': code, 'currency': 'uah'})
    assert response.status_code == 201
    return response.get_json()


def test_country_crud(client):
    country = _create_country(client)
    assert country['code'] == 'UA'
    assert country['currency'] == 'UAH'
    assert country['is_active'] is True

    duplicate = client.post('/api/countries', json={'name': 'Again', 'code': 'ua', 'currency': 'UAH'})
    assert duplicate.status_code == 409
    assert duplicate.get_json()['type'] == 'CONFLICT'

    updated = client.put(f"/api/countries/{country['id']}", json={'name': 'Ukraine (main)'})
    assert updated.get_json()['name'] == 'Ukraine (main)'
    assert updated.get_json()['code'] == 'UA'

    assert client.delete(f"/api/countries/{country['id']}").get_json() == {'deleted': True}
    missing = client.get(f"/api/countries/{country['id']}")
    assert missing.status_code == 404
    assert missing.get_json()['type'] == 'NOT_FOUND'


def test_invalid_body_returns_validation_error(client):
    response = client.post('/api/countries', json={'name': 'No code'})
    assert response.status_code == 400
    body = response.get_json()
    assert body['type'] == 'VALIDATION_ERROR'
    assert 'code' in body['details']


def test_metrics_lifecycle_and_duplicate_guard(client):
    country = _create_country(client)
    payload = {'date': '2024-05-01', 'country_id': country['id'],
               'spend_trust': 100, 'revenue_usdt_priemka': 200}

    created = client.post('/api/metrics', json=payload)
    assert created.status_code == 201
    row = created.get_json()
    assert row['total_expenses_usdt'] == pytest.approx(151)
    assert row['roi'] == pytest.approx(49 / 151)

    assert client.post('/api/metrics', json=payload).status_code == 409

    updated = client.put(f"/api/metrics/{row['id']}", json={'additional_expenses': 9})
    body = updated.get_json()
    assert body['spend_trust'] == 100
    assert body['total_expenses_usdt'] == pytest.approx(160)
    assert body['net_profit_math'] == pytest.approx(40)

    listed = client.get('/api/metrics?start_date=2024-05-01&end_date=2024-05-31').get_json()
    assert [m['id'] for m in listed] == [row['id']]

    assert client.delete(f"/api/metrics/{row['id']}").status_code == 200
    assert client.get(f"/api/metrics/{row['id']}").status_code == 404


def test_metrics_list_filters_zero_spend_days(client):
    country = _create_country(client)
    client.post('/api/metrics', json={'date': '2024-05-01', 'country_id': country['id'], 'spend_fbm': 5})
    client.post('/api/metrics', json={'date': '2024-05-02', 'country_id': country['id'], 'revenue_usdt_own': 5})

    assert len(client.get('/api/metrics').get_json()) == 1
    assert len(client.get('/api/metrics?filter_zero_spend=false').get_json()) == 2


def test_country_settings_override_calculation(client):
    country = _create_country(client)
    settings = client.put(f"/api/countries/{country['id']}/settings",
                          json={'priemka_commission_rate': 0.1, 'head_designer_fixed': 10})
    assert settings.status_code == 200
    assert settings.get_json()['priemka_commission_rate'] == 0.1
    assert settings.get_json()['buyer_payroll_rate'] is None

    row = client.post('/api/metrics', json={'date': '2024-05-01', 'country_id': country['id'],
                                            'spend_trust': 100, 'revenue_usdt_priemka': 200}).get_json()
    assert row['commission_priemka'] == pytest.approx(20)
    assert row['payroll_head_designer'] == 10

    cleared = client.put(f"/api/countries/{country['id']}/settings", json={'head_designer_fixed': None})
    assert cleared.get_json()['head_designer_fixed'] is None
    assert cleared.get_json()['priemka_commission_rate'] == 0.1


def test_settings_are_merged_with_defaults(client):
    settings = client.get('/api/settings').get_json()
    assert settings['buyerRate'] == '12.0'
    assert settings['filterZeroSpend'] == 'true'

    updated = client.put('/api/settings', json={'buyerRate': '10'}).get_json()
    assert updated['buyerRate'] == '10'

    assert client.put('/api/settings', json={'unknownKey': '1'}).status_code == 400


def test_payroll_endpoints(client):
    country = _create_country(client)
    client.post('/api/metrics', json={'date': '2024-05-01', 'country_id': country['id'], 'spend_trust': 500})
    employee = client.post('/api/employees', json={'name': 'Alex', 'role': 'buyer',
                                                   'country_id': country['id']}).get_json()
    assert employee['is_active'] is True

    single = client.get(f"/api/payroll/employee/{employee['id']}?start_date=2024-05-01&end_date=2024-05-31")
    assert single.get_json()['calculated_amount'] == 60.0

    everyone = client.get('/api/payroll?start_date=2024-05-01&end_date=2024-05-31').get_json()
    assert everyone['totals']['calculated_amount'] == 60.0

    assert client.get(f"/api/payroll/employee/{employee['id']}").status_code == 400
    assert client.get('/api/payroll/employee/999?start_date=2024-05-01&end_date=2024-05-31').status_code == 404

    summary = client.get('/api/payroll/summary?buffer_weeks=0').get_json()
    assert summary['totals']['total_payroll'] == 60.0


def test_payment_status_transition_moves_employee_balance_once(client):
    employee = client.post('/api/employees', json={'name': 'Sam', 'role': 'other', 'fixed_rate': 5}).get_json()
    payment = client.post('/api/payments', json={'employee_id': employee['id'], 'amount': 40,
                                                 'payment_date': '2024-05-10'}).get_json()
    assert payment['status'] == 'pending'

    client.put(f"/api/payments/{payment['id']}", json={'status': 'paid'})
    client.put(f"/api/payments/{payment['id']}", json={'notes': 'wire sent'})
    assert client.get(f"/api/employees/{employee['id']}").get_json()['current_balance'] == -40

    client.delete(f"/api/payments/{payment['id']}")
    assert client.get(f"/api/employees/{employee['id']}").get_json()['current_balance'] == 0


def test_employee_with_payments_is_deactivated_not_deleted(client):
    employee = client.post('/api/employees', json={'name': 'Kim', 'role': 'designer'}).get_json()
    client.post('/api/payments', json={'employee_id': employee['id'], 'amount': 10,
                                       'payment_date': '2024-05-10', 'status': 'paid'})

    response = client.delete(f"/api/employees/{employee['id']}").get_json()
    assert response['deactivated'] is True
    assert response['employee']['is_active'] is False


def test_balances_transactions_and_expenses(client):
    balances = {b['code']: b for b in client.get('/api/balances').get_json()}
    assert set(balances) == {'EXCHANGE', 'TRUST', 'CROSSGIF', 'FBM'}

    tx = client.post('/api/balance-transactions', json={
        'balance_id': balances['TRUST']['id'], 'type': 'top_up', 'amount': 300, 'date': '2024-05-01'})
    assert tx.status_code == 201

    client.put(f"/api/balance-transactions/{tx.get_json()['id']}", json={'amount': 250})
    balances = {b['code']: b for b in client.get('/api/balances').get_json()}
    assert balances['TRUST']['current_amount'] == 250

    expense = client.post('/api/expenses', json={
        'date': '2024-05-02', 'amount': 100, 'description': 'Top up FBM',
        'category': 'agency_topup', 'target_balance_code': 'FBM'}).get_json()
    assert len(expense['transaction_ids']) == 2

    linked = expense['transaction_ids'][0]
    assert client.delete(f"/api/balance-transactions/{linked}").status_code == 409

    balances = {b['code']: b for b in client.get('/api/balances').get_json()}
    assert balances['EXCHANGE']['current_amount'] == -100
    assert balances['FBM']['current_amount'] == 100

    client.delete(f"/api/expenses/{expense['id']}")
    balances = {b['code']: b for b in client.get('/api/balances').get_json()}
    assert balances['EXCHANGE']['current_amount'] == 0

    listed = client.get(f"/api/balance-transactions?balance_id={balances['TRUST']['id']}").get_json()
    assert listed['total'] == 1

    corrected = client.patch(f"/api/balances/{balances['TRUST']['id']}", json={'current_amount': 275})
    assert corrected.get_json()['current_amount'] == 275


def test_wallet_sync_and_assignment(client):
    country = _create_country(client)
    client.post('/api/wallet/country-wallets', json={'country_id': country['id'], 'address': 'TUAWALLET'})

    stats = client.post('/api/wallet/sync', json={'transfers': [
        {'tx_id': 'a', 'from_address': 'tuawallet', 'to_address': 'TMAIN', 'amount': 20,
         'timestamp': '2024-05-01T08:00:00', 'is_incoming': True},
        {'tx_id': 'b', 'from_address': 'TSTRANGER', 'to_address': 'TMAIN', 'amount': 5,
         'timestamp': '2024-05-01T09:00:00', 'is_incoming': True},
    ]}).get_json()
    assert stats == {'new': 2, 'existing': 0, 'processed': 1, 'unmatched': 1}

    pending = client.get('/api/wallet/transactions?processed=false').get_json()
    assert [t['tx_id'] for t in pending['transactions']] == ['b']

    assigned = client.patch(f"/api/wallet/transactions/{pending['transactions'][0]['id']}",
                            json={'country_id': country['id']}).get_json()
    assert assigned['is_processed'] is True

    metrics = client.get('/api/metrics?filter_zero_spend=false').get_json()
    assert metrics[0]['revenue_usdt_own'] == 25

    assert client.post('/api/wallet/sync', json={'transfers': 'nope'}).status_code == 400


def test_import_upload(client):
    _create_country(client)
    body = ('date,country_code,spend_trust,spend_crossgif,spend_fbm,revenue_local_priemka,'
            'revenue_usdt_priemka,revenue_local_own,revenue_usdt_own,fd_count,fd_sum_local\n'
            '2024-05-01,UA,100,0,0,0,200,0,0,0,0\n')
    response = client.post('/api/import', data={'file': (io.BytesIO(body.encode()), 'may.csv')},
                           content_type='multipart/form-data')
    assert response.status_code == 200
    assert response.get_json()['imported'] == 1

    rejected = client.post('/api/import', data={'file': (io.BytesIO(b'x'), 'may.txt')},
                           content_type='multipart/form-data')
    assert rejected.status_code == 400


def test_dashboard_totals(client):
    ua = _create_country(client)
    pl = _create_country(client, code='PL')
    client.post('/api/metrics', json={'date': '2024-05-01', 'country_id': ua['id'],
                                      'spend_trust': 100, 'revenue_usdt_priemka': 200})
    client.post('/api/metrics', json={'date': '2024-05-02', 'country_id': pl['id'],
                                      'spend_trust': 100, 'revenue_usdt_priemka': 200})

    data = client.get('/api/dashboard?start_date=2024-05-01&end_date=2024-05-31').get_json()
    assert data['totals']['total_revenue_usdt'] == pytest.approx(400)
    assert data['totals']['total_expenses_usdt'] == pytest.approx(302)
    assert data['totals']['roi'] == pytest.approx(98 / 302)
    assert [c['code'] for c in data['countries']] == ['PL', 'UA']
    assert [d['date'] for d in data['daily']] == ['2024-05-01', '2024-05-02']
