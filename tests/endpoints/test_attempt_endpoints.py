import asyncio

from quizpath.core.constants import CheckTypeEnum
from quizpath.schemas.attempt import Attempt
from quizpath.schemas.submission import Submission
from tests.helpers.asserts import api_call, assert_error, user_headers
from tests.helpers.contract import validate_response_schema
from tests.helpers.factories import make_question, make_questionnaire, set_path_logic

HEADERS = user_headers(42)


def _start(client, questionnaire_id, headers=HEADERS):
    response = api_call(client, "POST", "/attempts/", headers=headers, json={"questionnaire_id": questionnaire_id})
    assert response.status_code == 201
    return response.json()["data"]


def test_start_attempt_and_join_live_session(client, db_session, sessions):
    questionnaire = make_questionnaire(db_session)
    data = _start(client, questionnaire.id)
    assert data["status"] == "in_progress"
    assert data["user_id"] == 42
    assert data["result"] == "pending"

    state = asyncio.run(sessions.get_session(questionnaire.id))
    assert state.participants == {"42": data["id"]}

def test_second_start_is_a_conflict(client, db_session):
    questionnaire = make_questionnaire(db_session)
    _start(client, questionnaire.id)
    response = client.post("/attempts/", headers=HEADERS, json={"questionnaire_id": questionnaire.id})
    error = assert_error(response, 409, "INVALID_STATE")
    assert "in-progress attempt" in error["message"]

def test_start_unknown_questionnaire(client):
    response = client.post("/attempts/", headers=HEADERS, json={"questionnaire_id": 12345})
    assert_error(response, 404, "NOT_FOUND")

def test_full_branching_flow(client, db_session):
    """
    Walk a branching questionnaire end to end over HTTP.
    Navigate, answer with two grading strategies, complete, and read back the submissions.
    """
    print("\n[TEST] Branching questionnaire flow")
    questionnaire = make_questionnaire(db_session, pass_percentage=60, pass_text="Passed!")
    q1 = make_question(db_session, questionnaire, text="Pick a branch",
                       answers=[{"id": "left", "text": "Left", "is_correct": True},
                                {"id": "right", "text": "Right"}])
    q2 = make_question(db_session, questionnaire, text="Name the powerhouse of the cell",
                       check_type=CheckTypeEnum.KEYWORDS,
                       check_config={"keywords": ["mitochondria"]}, points=3)
    set_path_logic(db_session, questionnaire, [
        {"type": "path", "question_id": q1.id, "answers": {
            "left": {"type": "question", "question_id": q2.id},
            "right": {"type": "end"},
        }},
    ])
    print("[1] Starting attempt")
    attempt_id = _start(client, questionnaire.id)["id"]

    first = api_call(client, "POST", f"/attempts/{attempt_id}/next", headers=HEADERS, json={}).json()["data"]
    assert first["resolution"]["kind"] == "next_question"
    assert first["question"]["id"] == q1.id
    assert first["question"]["answers"] == ["Left", "Right"]

    submit = api_call(client, "POST", f"/attempts/{attempt_id}/answers", headers=HEADERS,
                      json={"question_id": q1.id, "user_answer": "left", "time_spent": 4})
    assert submit.status_code == 201
    assert submit.json()["data"]["validation_result"]["status"] == "correct"

    second = api_call(client, "POST", f"/attempts/{attempt_id}/next", headers=HEADERS,
                      json={"current_question_id": q1.id, "answer_key": "left"}).json()["data"]
    assert second["question"]["id"] == q2.id

    api_call(client, "POST", f"/attempts/{attempt_id}/answers", headers=HEADERS,
             json={"question_id": q2.id, "user_answer": "The Mitochondria!", "time_spent": 10})

    done = api_call(client, "POST", f"/attempts/{attempt_id}/next", headers=HEADERS,
                    json={"current_question_id": q2.id}).json()["data"]
    assert done["resolution"]["kind"] == "end"
    assert done["question"] is None

    print("[2] Completing attempt")
    completed = api_call(client, "POST", f"/attempts/{attempt_id}/complete", headers=HEADERS, json={}).json()["data"]
    assert completed["status"] == "completed"
    assert completed["score"] == 4
    assert completed["percentage"] == 100.0
    assert completed["result"] == "pass"
    assert completed["result_text"] == "Passed!"
    assert completed["path_taken"] == [q1.id, q2.id]
    assert completed["time_spent"] == 14

    submissions = api_call(client, "GET", f"/attempts/{attempt_id}/submissions", headers=HEADERS).json()["data"]
    validate_response_schema(submissions, Submission)
    assert [s["question_id"] for s in submissions] == [q1.id, q2.id]

def test_duplicate_answer_is_a_conflict(client, db_session):
    questionnaire = make_questionnaire(db_session)
    question = make_question(db_session, questionnaire)
    attempt_id = _start(client, questionnaire.id)["id"]
    payload = {"question_id": question.id, "user_answer": "4"}
    api_call(client, "POST", f"/attempts/{attempt_id}/answers", headers=HEADERS, json=payload)
    response = client.post(f"/attempts/{attempt_id}/answers", headers=HEADERS, json=payload)
    assert_error(response, 409, "INVALID_STATE")

def test_other_users_cannot_see_attempt(client, db_session):
    questionnaire = make_questionnaire(db_session)
    attempt_id = _start(client, questionnaire.id)["id"]
    response = client.get(f"/attempts/{attempt_id}", headers=user_headers(43))
    assert_error(response, 404, "NOT_FOUND")

def test_abandon_then_operations_conflict(client, db_session):
    questionnaire = make_questionnaire(db_session)
    question = make_question(db_session, questionnaire)
    attempt_id = _start(client, questionnaire.id)["id"]
    abandoned = api_call(client, "POST", f"/attempts/{attempt_id}/abandon", headers=HEADERS).json()["data"]
    assert abandoned["status"] == "abandoned"

    response = client.post(f"/attempts/{attempt_id}/answers", headers=HEADERS,
                           json={"question_id": question.id, "user_answer": "4"})
    assert_error(response, 409, "INVALID_STATE")
    assert_error(client.post(f"/attempts/{attempt_id}/complete", headers=HEADERS, json={}), 409, "INVALID_STATE")

def test_list_attempts_by_status(client, db_session):
    questionnaire = make_questionnaire(db_session, allow_retake=True)
    first = _start(client, questionnaire.id)["id"]
    api_call(client, "POST", f"/attempts/{first}/abandon", headers=HEADERS)
    second = _start(client, questionnaire.id)["id"]

    everything = api_call(client, "GET", "/attempts/", headers=HEADERS).json()["data"]
    validate_response_schema(everything, Attempt)
    assert {a["id"] for a in everything} == {first, second}
    abandoned = api_call(client, "GET", "/attempts/?status=abandoned", headers=HEADERS).json()["data"]
    assert [a["id"] for a in abandoned] == [first]

def test_manual_review_flow(client, db_session):
    questionnaire = make_questionnaire(db_session, pass_points=1)
    essay = make_question(db_session, questionnaire, check_type=CheckTypeEnum.MANUAL, answers=[], points=2)
    attempt_id = _start(client, questionnaire.id)["id"]
    submit = api_call(client, "POST", f"/attempts/{attempt_id}/answers", headers=HEADERS,
                      json={"question_id": essay.id, "user_answer": "An essay"}).json()["data"]
    submission_id = submit["submission"]["id"]
    assert submit["submission"]["flagged_for_review"] is True

    flagged = api_call(client, "GET", "/attempts/submissions/flagged").json()["data"]
    assert [s["id"] for s in flagged] == [submission_id]

    completed = api_call(client, "POST", f"/attempts/{attempt_id}/complete", headers=HEADERS, json={}).json()["data"]
    assert completed["result"] == "fail"

    review = {
        "validation_result": {"status": "partial", "score": 1.5, "max_score": 2, "explanation": "Decent"},
        "review_notes": "Needs sources",
    }
    reviewed = api_call(client, "PUT", f"/attempts/submissions/{submission_id}/review", json=review).json()["data"]
    assert reviewed["validation_status"] == "partial"
    assert reviewed["flagged_for_review"] is False

    attempt = api_call(client, "GET", f"/attempts/{attempt_id}", headers=HEADERS).json()["data"]
    assert attempt["score"] == 1.5
    assert attempt["percentage"] == 75.0
    assert attempt["result"] == "pass"

def test_review_rejects_score_above_max(client, db_session):
    review = {"validation_result": {"status": "correct", "score": 5, "max_score": 2}}
    response = client.put("/attempts/submissions/1/review", json=review)
    assert_error(response, 422, "VALIDATION_ERROR")

def test_end_of_path_after_last_question(client, db_session):
    questionnaire = make_questionnaire(db_session)
    question = make_question(db_session, questionnaire)
    attempt_id = _start(client, questionnaire.id)["id"]

    data = api_call(client, "GET", f"/attempts/{attempt_id}/end-of-path", headers=HEADERS).json()["data"]
    assert data == {"attempt_id": attempt_id, "is_end_of_path": False}

    api_call(client, "POST", f"/attempts/{attempt_id}/answers", headers=HEADERS,
             json={"question_id": question.id, "user_answer": "4"})
    data = api_call(client, "GET", f"/attempts/{attempt_id}/end-of-path", headers=HEADERS).json()["data"]
    assert data["is_end_of_path"] is True
