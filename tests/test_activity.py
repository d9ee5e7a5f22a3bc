import pytest

from academics.models import ActivityLog
from academics.services import record_activity


@pytest.mark.django_db
def test_crud_actions_are_logged(api, registrar, department):
    client = api(registrar.user)
    created = client.post("/api/semesters/", {"name": "2026 Spring", "start_date": "2026-01-12", "end_date": "2026-05-15"})
    semester_id = created.json()["id"]
    client.patch(f"/api/semesters/{semester_id}/", {"name": "2026 Spring term"})
    client.delete(f"/api/semesters/{semester_id}/")

    logs = ActivityLog.objects.filter(target_table="academics_semester", target_id=semester_id)
    assert sorted(logs.values_list("action", flat=True)) == ["create", "delete", "update"]
    assert all(log.user_id == registrar.user_id for log in logs)


@pytest.mark.django_db
def test_activity_list_is_admin_only(api, registrar, admin_user):
    record_activity(registrar.user, "other", description="Manual entry")
    assert api(registrar.user).get("/api/activity/").status_code == 403
    body = api(admin_user).get("/api/activity/").json()
    assert body["count"] == 1
    assert body["results"][0]["description"] == "Manual entry"


@pytest.mark.django_db
def test_activity_filters(api, admin_user, registrar, accountant):
    record_activity(registrar.user, "create", table="academics_course", target_id=1)
    record_activity(registrar.user, "delete", table="academics_course", target_id=1)
    record_activity(accountant.user, "create", table="finance_payment", target_id=5)
    client = api(admin_user)

    assert client.get("/api/activity/", {"action": "create"}).json()["count"] == 2
    assert client.get("/api/activity/", {"target_table": "finance_payment"}).json()["count"] == 1
    assert client.get(f"/api/users/{registrar.user_id}/activity/").json()["count"] == 2


@pytest.mark.django_db
def test_activity_summary_counts_by_action(api, admin_user, registrar):
    record_activity(registrar.user, "create")
    record_activity(registrar.user, "create")
    record_activity(registrar.user, "generate")
    body = api(admin_user).get("/api/activity/summary/").json()
    assert body["total"] == 3
    assert body["by_action"]["create"] == 2
    assert body["by_action"]["delete"] == 0
    assert len(body["recent"]) == 3


@pytest.mark.django_db
def test_record_activity_uses_target_table_and_id(registrar, department):
    entry = record_activity(registrar.user, "update", department, "Renamed")
    assert (entry.target_table, entry.target_id) == ("academics_department", department.pk)
