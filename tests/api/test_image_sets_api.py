# tests/api/test_image_sets_api.py
from fastapi.testclient import TestClient

API = "/api/v1/image-sets"

NEW_SET = {
    "images": ["https://img/a", "https://img/b", "https://img/c"],
    "correct_answer": "music",
    "hint": "Listen closely",
    "category": "arts",
}

def test_default_sets_are_seeded(client: TestClient):
    response = client.get(f"{API}/")
    assert response.status_code == 200
    answers = [item["correct_answer"] for item in response.json()]
    assert answers == ["nature", "technology", "food"]

def test_filter_by_category(client: TestClient):
    response = client.get(f"{API}/", params={"category": "food"})
    assert [item["correct_answer"] for item in response.json()] == ["food"]

def test_create_and_get_image_set(client: TestClient):
    response = client.post(f"{API}/", json=NEW_SET)
    assert response.status_code == 201
    created = response.json()
    assert created["id"] is not None
    assert created["correct_answer"] == "music"

    fetched = client.get(f"{API}/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["images"] == NEW_SET["images"]

def test_create_duplicate_conflicts(client: TestClient):
    assert client.post(f"{API}/", json=NEW_SET).status_code == 201
    response = client.post(f"{API}/", json=NEW_SET)
    assert response.status_code == 409

def test_create_requires_three_images(client: TestClient):
    response = client.post(f"{API}/", json={**NEW_SET, "images": ["https://img/a", "https://img/b"]})
    assert response.status_code == 422

def test_create_rejects_blank_answer(client: TestClient):
    response = client.post(f"{API}/", json={**NEW_SET, "correct_answer": ""})
    assert response.status_code == 422

def test_update_image_set(client: TestClient):
    created = client.post(f"{API}/", json=NEW_SET).json()
    response = client.patch(f"{API}/{created['id']}", json={"hint": "Hum along"})
    assert response.status_code == 200
    assert response.json()["hint"] == "Hum along"
    assert response.json()["correct_answer"] == "music"

def test_update_is_validated(client: TestClient):
    created = client.post(f"{API}/", json=NEW_SET).json()
    assert client.patch(f"{API}/{created['id']}", json={"images": ["only-one"]}).status_code == 422
    assert client.patch(f"{API}/{created['id']}", json={"correct_answer": None}).status_code == 400

def test_delete_image_set(client: TestClient):
    created = client.post(f"{API}/", json=NEW_SET).json()
    assert client.delete(f"{API}/{created['id']}").status_code == 204
    assert client.get(f"{API}/{created['id']}").status_code == 404

def test_unknown_image_set(client: TestClient):
    assert client.get(f"{API}/9999").status_code == 404
    assert client.patch(f"{API}/9999", json={"hint": "x"}).status_code == 404
    assert client.delete(f"{API}/9999").status_code == 404

def test_create_rejects_answer_no_guess_can_match(client: TestClient):
    for answer in ["!!", "a", "x" * 51]:
        response = client.post(f"{API}/", json={**NEW_SET, "correct_answer": answer})
        assert response.status_code == 422, answer

def test_create_accepts_answer_with_punctuation(client: TestClient):
    response = client.post(f"{API}/", json={**NEW_SET, "correct_answer": "Rock 'n' Roll!"})
    assert response.status_code == 201

def test_update_rejects_answer_no_guess_can_match(client: TestClient):
    created = client.post(f"{API}/", json=NEW_SET).json()
    response = client.patch(f"{API}/{created['id']}", json={"correct_answer": "?!"})
    assert response.status_code == 422
    assert client.get(f"{API}/{created['id']}").json()["correct_answer"] == "music"
