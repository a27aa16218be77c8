import pytest
from fastapi.testclient import TestClient

from anode.core.paymaster import PaymasterProcessor, SigningContext
from anode.main import app
from anode.services.cache import get_result_cache
from anode.services.paymaster import get_paymaster_processor

PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
PAYMASTER = "0x3720B69B7f30D92FACed624c39B1fd317408774B"

client = TestClient(app)

USER_OPERATION = {
    "sender": "0x1234567890123456789012345678901234567890",
    "nonce": "0x0",
    "initCode": "0x",
    "callData": "0x",
    "callGasLimit": "0x5208",
    "verificationGasLimit": "0x186a0",
    "preVerificationGas": "0x5208",
    "maxFeePerGas": "0x3b9aca00",
    "maxPriorityFeePerGas": "0x3b9aca00",
    "paymasterAndData": "0x",
    "signature": "0x",
}


def use_processor(processor):
    app.dependency_overrides[get_paymaster_processor] = lambda: processor
    app.dependency_overrides[get_result_cache] = lambda: None


@pytest.fixture(autouse=True)
def configured_paymaster():
    use_processor(PaymasterProcessor(SigningContext.create(PRIVATE_KEY, PAYMASTER)))
    yield
    app.dependency_overrides.clear()


def process(body):
    return client.post("/api/v1/paymaster/process", json=body)


def test_process_sponsored_operation():
    response = process({"userOperation": USER_OPERATION})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["paymentMethod"] == "paymaster"
    assert data["userOperation"]["paymasterAndData"].startswith("0x" + PAYMASTER[2:].lower())
    assert len(data["userOperation"]["paymasterAndData"]) == 2 + 97 * 2
    assert data["userOpHash"].startswith("0x")
    assert data["entryPoint"]["version"] == "0.6"
    assert data["processing"]["modules"] == ["basic_paymaster"]
    assert data["processing"]["service"] == "aNode Paymaster v0.1.0"
    assert data["processing"]["totalDuration"].endswith("ms")
    assert "error" not in data


def test_process_direct_payment():
    operation = {**USER_OPERATION, "maxFeePerGas": "0x0", "maxPriorityFeePerGas": "0x0"}

    data = process({"userOperation": operation}).json()

    assert data["success"] is True
    assert data["paymentMethod"] == "direct-payment"
    assert data["userOperation"]["paymasterAndData"] == "0x"


def test_process_honours_entry_point_version():
    data = process({"userOperation": USER_OPERATION, "entryPointVersion": "0.7"}).json()

    assert data["entryPoint"]["entryPoint"] == "0x0000000071727De22E5E9d8BAf0edAc6f37da032"


def test_process_missing_field():
    operation = dict(USER_OPERATION)
    del operation["callData"]

    response = process({"userOperation": operation})

    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["error"]["code"] == "INVALID_USER_OPERATION"
    assert "callData" in data["error"]["message"]


@pytest.mark.parametrize("body", [{}, {"userOperation": "0x1234"}, {"userOperation": [1, 2]}])
def test_process_rejects_non_object_operation(body):
    response = process(body)

    assert response.status_code == 400
    assert response.json()["error"] == {
        "code": "INVALID_REQUEST",
        "message": "Invalid userOperation format",
    }


def test_process_rejects_malformed_json():
    response = client.post(
        "/api/v1/paymaster/process",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_REQUEST"


def test_process_without_signing_key():
    use_processor(PaymasterProcessor(None))

    response = process({"userOperation": USER_OPERATION})

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "CONFIGURATION_ERROR"


def test_health_reports_signer():
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "aNode Paymaster"
    assert data["entryPointVersion"] == "0.6"
    assert data["paymaster"] == PAYMASTER
    assert data["signer"]["address"] == "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
    assert data["cache"] == {"status": "disabled"}
    assert "privateKey" not in str(data)


def test_health_degraded_without_signer():
    use_processor(PaymasterProcessor(None))

    data = client.get("/healthz").json()

    assert data["status"] == "degraded"
    assert data["signer"] == {"status": "missing"}


def test_cors_preflight():
    response = client.options(
        "/api/v1/paymaster/process",
        headers={
            "Origin": "https://wallet.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]


def test_request_id_is_echoed():
    response = client.get("/health", headers={"x-request-id": "req-42"})

    assert response.headers["x-request-id"] == "req-42"


def test_root():
    data = client.get("/").json()

    assert data["name"] == "aNode Paymaster"
    assert data["endpoints"]["process"] == "/api/v1/paymaster/process"
