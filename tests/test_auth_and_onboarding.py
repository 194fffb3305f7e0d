from datetime import timedelta

import pytest

from gate_service.api.dependencies import get_onboarding_service
from gate_service.services import OnboardingService
from gate_service.utils.exceptions import EntityIdGenerationError, OnboardingIncompleteError

from .conftest import T0, make_user


# ---------- login ----------

def test_login_issues_token_usable_for_me(client, repository):
    user = make_user(repository, "lead@onlyfounders.test", role="team_lead", password="hunter22")

    res = client.post("/api/auth/login", json={"email": "lead@onlyfounders.test", "password": "hunter22"})

    assert res.status_code == 200
    body = res.json()
    assert body["message"] == "Login successful"
    assert body["user"]["id"] == user.id
    assert body["user"]["role"] == "team_lead"
    assert "password" not in str(body["user"]).lower()

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "lead@onlyfounders.test"
    assert repository.find_participant_by_id(user.id).login_count == 1


@pytest.mark.parametrize("email,password", [
    ("lead@onlyfounders.test", "wrong"),
    ("nobody@onlyfounders.test", "hunter22"),
])
def test_login_rejects_bad_credentials(client, repository, email, password):
    make_user(repository, "lead@onlyfounders.test", password="hunter22")

    res = client.post("/api/auth/login", json={"email": email, "password": password})

    assert res.status_code == 401
    assert res.json() == {"error": "Invalid email or password"}


def test_login_rejects_deactivated_account(client, repository):
    make_user(repository, "gone@onlyfounders.test", password="hunter22", is_active=False)

    res = client.post("/api/auth/login", json={"email": "gone@onlyfounders.test", "password": "hunter22"})

    assert res.status_code == 401


def test_me_requires_session(client):
    assert client.get("/api/auth/me").status_code == 401


def test_password_hash_is_not_plaintext(auth_service):
    hashed = auth_service.hash_password("hunter22")

    assert hashed != "hunter22"
    assert auth_service.verify_password("hunter22", hashed)
    assert not auth_service.verify_password("hunter23", hashed)


# ---------- onboarding ----------

def test_onboarding_assigns_entity_id_and_scannable_qr(client, bearer, codec, repository, operator):
    user = make_user(repository, "new@onlyfounders.test")

    res = client.post("/api/onboarding/complete", json={"photoUrl": "https://cdn.test/p.jpg"},
                      headers=bearer(user))

    assert res.status_code == 200
    entity_id = res.json()["entityId"]
    assert entity_id.startswith("OF-2026-")
    suffix = entity_id.rsplit("-", 1)[1]
    assert len(suffix) == 4 and suffix == suffix.upper()
    int(suffix, 16)

    stored = repository.find_participant_by_id(user.id)
    assert stored.entity_id == entity_id
    assert stored.photo_url == "https://cdn.test/p.jpg"
    assert codec.verify(stored.qr_token).entity_id == entity_id

    qr = client.get("/api/eid/qr", headers=bearer(user))
    assert qr.status_code == 200
    assert qr.json()["qrToken"] == stored.qr_token

    scan = client.post("/api/gate/verify-qr", json={"qrToken": stored.qr_token}, headers=bearer(operator))
    assert scan.json()["valid"] is True


def test_onboarding_twice_keeps_entity_id(client, bearer, repository):
    user = make_user(repository, "new@onlyfounders.test", entity_id="OF-2026-BEEF")

    res = client.post("/api/onboarding/complete", json={"photoUrl": "p.jpg"}, headers=bearer(user))

    assert res.json()["entityId"] == "OF-2026-BEEF"


def test_qr_requires_onboarding(client, bearer, repository):
    user = make_user(repository, "new@onlyfounders.test")

    assert client.get("/api/eid/qr", headers=bearer(user)).status_code == 400
    assert client.post("/api/eid/qr", headers=bearer(user)).status_code == 400


def test_qr_refresh_issues_newer_token(client, bearer, codec, clock, repository):
    user = make_user(repository, "new@onlyfounders.test", entity_id="OF-2026-BEEF")
    clock.set(T0 + timedelta(hours=2))

    res = client.post("/api/eid/qr", headers=bearer(user))

    assert res.status_code == 200
    token = res.json()["qrToken"]
    assert codec.verify(token).issued_at_ms > 0
    assert token.split(":")[1] == str(int((T0 + timedelta(hours=2)).timestamp() * 1000))
    assert repository.find_participant_by_id(user.id).qr_token == token


def test_entity_id_collision_is_retried(repository, codec, clock):
    make_user(repository, "taken@onlyfounders.test", entity_id="OF-2026-AAAA")
    suffixes = iter(["AAAA", "AAAA", "BBBB"])
    service = OnboardingService(repository, codec, clock=clock, random_suffix=lambda: next(suffixes))

    assert service.allocate_entity_id() == "OF-2026-BBBB"


def test_entity_id_generation_gives_up(repository, codec, clock):
    make_user(repository, "taken@onlyfounders.test", entity_id="OF-2026-AAAA")
    service = OnboardingService(repository, codec, clock=clock, max_attempts=5,
                                random_suffix=lambda: "AAAA")

    with pytest.raises(EntityIdGenerationError):
        service.allocate_entity_id()


def test_refresh_before_onboarding_is_refused(repository, codec, clock):
    user = make_user(repository, "new@onlyfounders.test")

    with pytest.raises(OnboardingIncompleteError):
        OnboardingService(repository, codec, clock=clock).refresh_qr(user)


def test_onboarding_gives_up_after_repeated_collisions(client, bearer, codec, clock, repository):
    make_user(repository, "taken@onlyfounders.test", entity_id="OF-2026-AAAA")
    user = make_user(repository, "new@onlyfounders.test")
    client.app.dependency_overrides[get_onboarding_service] = lambda: OnboardingService(
        repository, codec, clock=clock, random_suffix=lambda: "AAAA"
    )

    res = client.post("/api/onboarding/complete", json={"photoUrl": "p.jpg"}, headers=bearer(user))

    assert res.status_code == 500
    assert res.json() == {"error": "Failed to generate unique Entity ID. Please try again."}
    assert repository.find_participant_by_id(user.id).entity_id is None


def test_create_user_stores_hashed_password(auth_service, repository):
    user = auth_service.create_user(repository, "Mixed@OnlyFounders.test", "hunter22", "Mixed Case",
                                    role="gate_volunteer", phone_number="+91-9111111111")

    assert user.email == "mixed@onlyfounders.test"
    assert user.role == "gate_volunteer"
    assert user.phone_number == "+91-9111111111"
    assert user.password_hash != "hunter22"
    assert auth_service.authenticate(repository, "mixed@onlyfounders.test", "hunter22").id == user.id
