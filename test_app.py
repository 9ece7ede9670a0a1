# test_app.py
import io

import pytest

from app import create_app
from config import Settings
from errors import QuotaExceeded
from storage import MemoryStorage


class FakeOCR:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    def __call__(self, image_bytes):
        self.calls.append(image_bytes)
        if self.error:
            raise self.error
        return self.text


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def ocr():
    return FakeOCR(text="Week 42 schedule\nJohn Smith: 32\n\nMaria Garcia - 24.5\n")


@pytest.fixture
def client(storage, ocr):
    app = create_app(Settings(), storage=storage, ocr=ocr)
    app.config['TESTING'] = True
    return app.test_client()


def upload(client, data=b"fake-image"):
    return client.post(
        '/api/ocr',
        data={'image': (io.BytesIO(data), 'hours.jpg')},
        content_type='multipart/form-data',
    )


def test_health(client):
    resp = client.get('/health')
    assert resp.status_code == 200
    assert resp.data == b'ok'


def test_calculate(client):
    resp = client.post('/api/distributions/calculate', json={
        'totalAmount': 100,
        'partnerHours': [{'name': 'A', 'hours': 10}, {'name': 'B', 'hours': 30}],
    })
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['hourlyRate'] == 2.5
    assert body['totalHours'] == 40
    a, b = body['partnerPayouts']
    assert a['rounded'] == 25.0
    assert a['billBreakdown'] == {'20': 1, '5': 1}
    assert b['billBreakdown'] == {'20': 3, '10': 1, '5': 1}
    assert body['discrepancy'] == 0
    assert body['withinTolerance'] is True


def test_calculate_with_coins_and_settlement(client):
    resp = client.post('/api/distributions/calculate', json={
        'totalAmount': 100,
        'partnerHours': [{'name': 'A', 'hours': 1}, {'name': 'B', 'hours': 1}, {'name': 'C', 'hours': 1}],
        'settleRemainder': True,
    })
    body = resp.get_json()
    assert [p['rounded'] for p in body['partnerPayouts']] == [33.34, 33.33, 33.33]
    assert body['partnerPayouts'][1]['billBreakdown'] == {
        '20': 1, '10': 1, '1': 3, '0.25': 1, '0.05': 1, '0.01': 3,
    }
    assert body['totalRounded'] == 100
    assert body['discrepancy'] == 0


@pytest.mark.parametrize('payload', [
    {'totalAmount': 100},
    {'totalAmount': 100, 'partnerHours': []},
    {'totalAmount': 0, 'partnerHours': [{'name': 'A', 'hours': 1}]},
    {'totalAmount': 100, 'partnerHours': [{'name': 'A', 'hours': 0}]},
    {'totalAmount': 100, 'partnerHours': [{'name': '', 'hours': 3}]},
    {'totalAmount': 'lots', 'partnerHours': [{'name': 'A', 'hours': 1}]},
    {'totalAmount': 1e27, 'partnerHours': [{'name': 'A', 'hours': 1}]},
    {'totalAmount': 100, 'hourlyRate': 1e27, 'partnerHours': [{'name': 'A', 'hours': 1}]},
    {'totalAmount': 100, 'partnerHours': [{'name': 'A', 'hours': 1}], 'settleRemainder': 'false'},
    {'totalAmount': 100, 'partnerHours': [{'name': 'A', 'hours': 1}], 'settleRemainder': 1},
    [{'totalAmount': 100}],
    'totalAmount',
    42,
])
def test_calculate_rejects_bad_input(client, payload):
    resp = client.post('/api/distributions/calculate', json=payload)
    assert resp.status_code == 400
    assert resp.get_json()['error']


def test_calculate_settle_false_keeps_plain_rounding(client):
    resp = client.post('/api/distributions/calculate', json={
        'totalAmount': 100,
        'partnerHours': [{'name': 'A', 'hours': 1}, {'name': 'B', 'hours': 1}, {'name': 'C', 'hours': 1}],
        'settleRemainder': False,
    })
    assert resp.status_code == 200
    body = resp.get_json()
    assert [p['rounded'] for p in body['partnerPayouts']] == [33.33, 33.33, 33.33]
    assert body['discrepancy'] == pytest.approx(0.01)
    assert body['withinTolerance'] is True


@pytest.mark.parametrize('route', ['/api/distributions', '/api/partners'])
@pytest.mark.parametrize('payload', [[1, 2], 'Maria', 7])
def test_post_routes_require_json_object(client, storage, route, payload):
    resp = client.post(route, json=payload)
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'Request body must be a JSON object'
    assert storage.get_partners() == []
    assert storage.get_distributions() == []


def test_save_and_list_distributions(client, storage):
    resp = client.post('/api/distributions', json={
        'totalAmount': 100,
        'totalHours': 40,
        'hourlyRate': 2.5,
        'partnerData': [{'name': 'A', 'hours': 10, 'rounded': 25.0}],
    })
    assert resp.status_code == 201
    assert resp.get_json()['id'] == 1

    history = client.get('/api/distributions').get_json()
    assert len(history) == 1
    assert history[0]['partnerData'][0]['name'] == 'A'
    assert storage.get_distributions()[0].hourly_rate == 2.5


def test_save_distribution_validates(client, storage):
    resp = client.post('/api/distributions', json={
        'totalAmount': 100, 'totalHours': 0, 'hourlyRate': 2.5, 'partnerData': [],
    })
    assert resp.status_code == 400
    resp = client.post('/api/distributions', json={
        'totalAmount': 100, 'totalHours': 40, 'hourlyRate': 2.5, 'partnerData': 'nope',
    })
    assert resp.status_code == 400
    assert storage.get_distributions() == []


def test_partners(client):
    assert client.post('/api/partners', json={'name': '  Maria '}).status_code == 201
    assert client.post('/api/partners', json={'name': 'John'}).status_code == 201
    assert client.get('/api/partners').get_json() == [
        {'id': 1, 'name': 'Maria'},
        {'id': 2, 'name': 'John'},
    ]


def test_partner_name_required(client):
    assert client.post('/api/partners', json={'name': '   '}).status_code == 400
    assert client.post('/api/partners', json={}).status_code == 400


def test_ocr_upload(client, ocr):
    resp = upload(client)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['partnerHours'] == [
        {'name': 'John Smith', 'hours': 32.0},
        {'name': 'Maria Garcia', 'hours': 24.5},
    ]
    assert body['skippedLines'] == ['Week 42 schedule']
    assert body['extractedText'] == 'Week 42 schedule\nJohn Smith: 32\nMaria Garcia - 24.5'
    assert ocr.calls == [b"fake-image"]


def test_ocr_requires_image(client):
    resp = client.post('/api/ocr', data={}, content_type='multipart/form-data')
    assert resp.status_code == 400


def test_ocr_failure_suggests_manual_entry(storage):
    app = create_app(Settings(), storage=storage, ocr=FakeOCR(error=QuotaExceeded()))
    resp = upload(app.test_client())
    assert resp.status_code == 500
    body = resp.get_json()
    assert body['kind'] == 'quota_exceeded'
    assert body['suggestManualEntry'] is True
    assert 'quota' in body['error']


def test_upload_too_large(storage, ocr):
    app = create_app(Settings(), storage=storage, ocr=ocr)
    app.config['MAX_CONTENT_LENGTH'] = 64
    resp = upload(app.test_client(), data=b"x" * 1024)
    assert resp.status_code == 413
    assert resp.get_json()['suggestManualEntry'] is True
    assert ocr.calls == []


def test_unknown_route_is_json(client):
    resp = client.get('/api/nope')
    assert resp.status_code == 404
    assert 'error' in resp.get_json()
