"""HTTP layer tests using the Flask test client and injected fakes."""

import io
import os

import pytest

from app import create_app

from tests.conftest import FakeLedger


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / 'uploads'


@pytest.fixture
def client_for(make_pipeline, upload_dir):
    def _client(pipeline=None, **kwargs):
        if pipeline is None:
            pipeline, _, _ = make_pipeline(**kwargs)
        app = create_app(pipeline=pipeline, UPLOAD_FOLDER=str(upload_dir), TESTING=True)
        return app.test_client()
    return _client


@pytest.fixture
def removals(monkeypatch):
    """Record every os.remove call while still deleting the file."""
    calls = []
    original = os.remove

    def tracking_remove(path, *args, **kwargs):
        calls.append(path)
        return original(path, *args, **kwargs)

    monkeypatch.setattr(os, 'remove', tracking_remove)
    return calls


def _post(client, filename='certificate.png', content=b'fake image bytes', field='certificate', url='/verify'):
    return client.post(
        url,
        data={field: (io.BytesIO(content), filename)},
        content_type='multipart/form-data',
    )


def _leftover(upload_dir):
    return list(upload_dir.iterdir()) if upload_dir.exists() else []


def test_health(client_for):
    response = client_for().get('/health')
    assert response.status_code == 200
    body = response.get_json()
    assert body['status'] == 'OK'
    assert body['records'] == 2
    assert 'timestamp' in body


def test_verify_valid_certificate(client_for, upload_dir, removals):
    response = _post(client_for())
    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['status'] == 'valid'
    assert body['extracted_data']['cert_id'] == 'ABC-123'
    assert _leftover(upload_dir) == []
    assert len(removals) == 1


def test_verify_without_blockchain_confirmation(client_for):
    body = _post(client_for(ledger=FakeLedger(verified=False))).get_json()
    assert body['status'] == 'valid_no_blockchain'
    assert body['verdict']['color'] == 'orange'


def test_file_field_alias_and_upload_route(client_for):
    response = _post(client_for(), field='file', url='/upload')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'valid'


def test_no_file(client_for):
    response = client_for().post('/verify', data={}, content_type='multipart/form-data')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'No file uploaded'


def test_unsupported_file_type(client_for, upload_dir):
    response = _post(client_for(), filename='notes.txt')
    assert response.status_code == 400
    assert response.get_json()['success'] is False
    assert _leftover(upload_dir) == []


def test_empty_file_is_rejected_and_cleaned_up(client_for, upload_dir, removals):
    response = _post(client_for(), content=b'')
    assert response.status_code == 400
    assert _leftover(upload_dir) == []
    assert len(removals) == 1


def test_missing_certificate_id(client_for, upload_dir, removals):
    response = _post(client_for(text='Name: Jane Roe\nRoll No: 42'))
    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is False
    assert body['stage'] == 'no_cert_id'
    assert body['error'] == 'Could not extract certificate ID from the document'
    assert _leftover(upload_dir) == []
    assert len(removals) == 1


def test_extraction_failure(client_for, upload_dir, removals):
    response = _post(client_for(ocr_error=RuntimeError('engine crashed')))
    assert response.status_code == 500
    body = response.get_json()
    assert body['success'] is False
    assert body['stage'] == 'extraction_failed'
    assert 'engine crashed' in body['error']
    assert _leftover(upload_dir) == []
    assert len(removals) == 1


def test_infrastructure_failure_still_cleans_up(client_for, upload_dir, removals):
    class BrokenPipeline:
        store = {}

        async def run(self, data, mime_type):
            raise OSError('disk unavailable')

    response = _post(client_for(pipeline=BrokenPipeline()))
    assert response.status_code == 500
    assert 'disk unavailable' in response.get_json()['error']
    assert _leftover(upload_dir) == []
    assert len(removals) == 1


def test_oversized_upload(make_pipeline, upload_dir):
    pipeline, _, _ = make_pipeline()
    app = create_app(pipeline=pipeline, UPLOAD_FOLDER=str(upload_dir), MAX_CONTENT_LENGTH=16)
    response = _post(app.test_client(), content=b'x' * 1024)
    assert response.status_code == 413
    assert response.get_json()['success'] is False
