from tests.helpers.asserts import api_call, assert_error, user_headers
from tests.helpers.factories import make_question, make_questionnaire, set_path_logic


def test_validate_path_logic_reports_errors(client):
    payload = {"path_logic": [
        {"type": "question", "question_id": 1, "label": "a"},
        {"type": "question", "question_id": 2, "label": "a"},
        {"type": "goto", "goto": "b"},
    ]}
    response = api_call(client, "POST", "/questionnaires/path-logic/validate", json=payload)
    data = response.json()["data"]
    assert data["valid"] is False
    assert any("'a'" in error for error in data["errors"])
    assert any("'b'" in error for error in data["errors"])

def test_validate_path_logic_accepts_valid_graph(client):
    payload = {"path_logic": [
        {"type": "path", "question_id": 1, "answers": {"x": {"type": "question", "question_id": 2}}},
    ]}
    response = api_call(client, "POST", "/questionnaires/path-logic/validate", json=payload)
    assert response.json()["data"] == {"valid": True, "errors": [], "warnings": []}

def test_validate_reports_unknown_node_type(client):
    payload = {"path_logic": [{"type": "question", "question_id": 1}, {"type": "loop"}]}
    response = api_call(client, "POST", "/questionnaires/path-logic/validate", json=payload)
    data = response.json()["data"]
    assert data["valid"] is False
    assert data["errors"] == ["Invalid type 'loop' at path[1]"]

def test_all_paths_for_branching_questionnaire(client, db_session):
    questionnaire = make_questionnaire(db_session)
    q1 = make_question(db_session, questionnaire)
    q2 = make_question(db_session, questionnaire)
    set_path_logic(db_session, questionnaire, [
        {"type": "path", "question_id": q1.id, "answers": {
            "yes": {"type": "question", "question_id": q2.id},
            "no": {"type": "end"},
        }},
    ])
    response = api_call(client, "GET", f"/questionnaires/{questionnaire.id}/paths")
    assert response.json()["data"] == [[q1.id, q2.id], [q1.id]]

def test_all_paths_for_linear_questionnaire(client, db_session):
    questionnaire = make_questionnaire(db_session)
    q1 = make_question(db_session, questionnaire, position=0)
    q2 = make_question(db_session, questionnaire, position=1)
    response = api_call(client, "GET", f"/questionnaires/{questionnaire.id}/paths?start_question_id={q2.id}")
    assert response.json()["data"] == [[q2.id]]
    response = api_call(client, "GET", f"/questionnaires/{questionnaire.id}/paths")
    assert response.json()["data"] == [[q1.id, q2.id]]

def test_stored_invalid_path_logic_is_a_structural_error(client, db_session):
    questionnaire = make_questionnaire(db_session)
    set_path_logic(db_session, questionnaire, [{"type": "goto", "goto": "missing"}])
    response = client.get(f"/questionnaires/{questionnaire.id}/paths")
    error = assert_error(response, 422, "STRUCTURAL_ERROR")
    assert error["details"]["errors"] == ["Goto reference 'missing' at path[0] has no matching label"]

def test_stored_malformed_node_is_a_structural_error(client, db_session):
    questionnaire = make_questionnaire(db_session)
    set_path_logic(db_session, questionnaire, [{"type": "question"}, {"type": "loop"}])
    response = client.get(f"/questionnaires/{questionnaire.id}/paths")
    error = assert_error(response, 422, "STRUCTURAL_ERROR")
    assert "Invalid type 'loop' at path[1]" in error["details"]["errors"]

def test_paths_for_unknown_questionnaire(client):
    assert_error(client.get("/questionnaires/999/paths"), 404, "NOT_FOUND")

def test_leaderboard_requires_user_header(client, db_session):
    questionnaire = make_questionnaire(db_session)
    response = client.get(f"/questionnaires/{questionnaire.id}/leaderboard")
    assert_error(response, 422, "VALIDATION_ERROR")

def test_leaderboard_after_completed_attempt(client, db_session):
    questionnaire = make_questionnaire(db_session)
    question = make_question(db_session, questionnaire, points=2)
    headers = user_headers(1)
    attempt_id = api_call(client, "POST", "/attempts/", headers=headers,
                          json={"questionnaire_id": questionnaire.id}).json()["data"]["id"]
    api_call(client, "POST", f"/attempts/{attempt_id}/answers", headers=headers,
             json={"question_id": question.id, "user_answer": "4"})
    api_call(client, "POST", f"/attempts/{attempt_id}/complete", headers=headers, json={"time_spent": 30})

    response = api_call(client, "GET", f"/questionnaires/{questionnaire.id}/leaderboard", headers=headers)
    data = response.json()["data"]
    assert data["entries"][0]["user_id"] == 1
    assert data["entries"][0]["score"] == 2
    assert data["entries"][0]["is_current_user"] is True
    assert data["active_participants"] == 0

def test_questionnaire_attempts_across_users(client, db_session):
    questionnaire = make_questionnaire(db_session)
    for user_id in (1, 2):
        api_call(client, "POST", "/attempts/", headers=user_headers(user_id),
                 json={"questionnaire_id": questionnaire.id})

    data = api_call(client, "GET", f"/questionnaires/{questionnaire.id}/attempts").json()["data"]
    assert sorted(a["user_id"] for a in data) == [1, 2]
    assert api_call(client, "GET", f"/questionnaires/{questionnaire.id}/attempts?status=completed").json()["data"] == []
    assert_error(client.get("/questionnaires/999/attempts"), 404, "NOT_FOUND")
