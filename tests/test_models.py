from rundeck_cli.models import (
    ErrorEnvelope,
    Execution,
    ExecutionState,
    ListJobsFilters,
    OutputPage,
    RunJobParams,
)


def test_execution_parses_server_payload() -> None:
    execution = Execution.model_validate(
        {
            "id": 42,
            "href": "http://rundeck.example.com/api/24/execution/42",
            "status": "succeeded",
            "project": "Tech-Ops",
            "date-started": {"unixtime": 1700000000000, "date": "2023-11-14T22:13:20Z"},
            "date-ended": {"unixtime": 1700000005000, "date": "2023-11-14T22:13:25Z"},
            "successfulNodes": ["localhost"],
            "customField": "ignored",
        }
    )

    assert execution.date_ended is not None
    assert execution.date_ended.unixtime == 1700000005000
    assert execution.successful_nodes == ["localhost"]
    assert execution.failed_nodes == []
    assert execution.job is None


def test_to_json_dict_uses_server_names() -> None:
    state = ExecutionState(execution_id=7, completed=True, execution_state="FAILED")

    assert state.to_json_dict() == {
        "executionId": 7,
        "completed": True,
        "executionState": "FAILED",
    }
    assert not state.succeeded


def test_output_page_defaults() -> None:
    page = OutputPage.model_validate({"offset": "17", "completed": False})

    assert page.entries == []
    assert page.exec_completed is False


def test_error_envelope() -> None:
    envelope = ErrorEnvelope.model_validate(
        {"error": True, "apiversion": 24, "errorCode": "api.error.x", "message": "nope"}
    )

    assert envelope.error is True
    assert envelope.error_code == "api.error.x"


def test_run_job_params_body_only_contains_set_fields() -> None:
    assert RunJobParams(options={"name": "Jenkins"}).to_body() == {"options": {"name": "Jenkins"}}
    assert RunJobParams().to_body() == {"options": {}}
    assert RunJobParams(as_user="ops", node_filter="tags: web").to_body() == {
        "options": {},
        "asUser": "ops",
        "filter": "tags: web",
    }


def test_list_jobs_filters_to_params() -> None:
    filters = ListJobsFilters(group_path="demo", job_exact_filter="hello-world")

    assert filters.to_params() == {"groupPath": "demo", "jobExactFilter": "hello-world"}
