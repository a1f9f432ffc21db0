import uuid

import pytest

from ambulatorio.query_builder import NOT_FOUND_CODE


def _consultation(client, patient, reason="Lombalgia", **extra):
    res = client.from_("consultations").insert({
        "patient_id": patient["id"],
        "reason": reason,
        **extra,
    }).select().execute()
    assert res.error is None, res.error
    return res.data


def test_insert_generates_primary_key_and_created_at(client, practitioner):
    res = client.from_("session_types").insert({
        "practitioner_id": practitioner["id"],
        "name": "Prima visita",
        "price": 60,
    }).select().execute()

    assert res.error is None
    row = res.data
    assert isinstance(row, dict)
    uuid.UUID(row["id"])
    assert row["created_at"].endswith("Z")
    # server default visibile dopo la rilettura
    assert row["is_active"] is True


def test_insert_many_returns_list_in_input_order(client, practitioner):
    names = ["A", "B", "C"]
    res = client.from_("session_types").insert([
        {"practitioner_id": practitioner["id"], "name": n, "price": 10} for n in names
    ]).select("id, name").execute()

    assert res.error is None
    assert [r["name"] for r in res.data] == names
    assert len({r["id"] for r in res.data}) == 3
    assert set(res.data[0]) == {"id", "name"}


def test_insert_without_select_echoes_written_row(client, practitioner):
    res = client.from_("session_types").insert({
        "practitioner_id": practitioner["id"],
        "name": "Controllo",
        "price": 40,
        "is_active": False,
    }).execute()
    assert res.error is None
    assert res.data["name"] == "Controllo"
    assert res.data["is_active"] is False
    assert res.data["id"]


def test_insert_empty_list(client):
    res = client.from_("patients").insert([]).execute()
    assert res.error is None
    assert res.data == []


def test_boolean_and_json_round_trip(client, practitioner):
    res = client.from_("saved_reports").insert({
        "practitioner_id": practitioner["id"],
        "name": "Fatturato",
        "filters": {"year": 2024, "months": [1, 2]},
    }).select().execute()
    assert res.error is None
    assert res.data["filters"] == {"year": 2024, "months": [1, 2]}

    st = client.from_("session_types").insert({
        "practitioner_id": practitioner["id"], "name": "X", "price": 1, "is_active": True,
    }).select().execute()
    fetched = client.from_("session_types").select("is_active").eq("id", st.data["id"]).single().execute()
    assert fetched.data == {"is_active": True}


def test_single_on_zero_rows_is_not_found(client):
    res = client.from_("patients").select("*").eq("id", "missing").single().execute()
    assert res.data is None
    assert res.error.code == NOT_FOUND_CODE


def test_non_single_on_zero_rows_is_empty_list(client):
    res = client.from_("patients").select("*").eq("id", "missing").execute()
    assert res.error is None
    assert res.data == []


def test_filters_order_and_range(client, patient):
    for i in range(5):
        _consultation(client, patient, reason=f"Seduta {i}", date_time=f"2024-01-0{i + 1}T10:00:00")

    res = (
        client.from_("consultations")
        .select("reason")
        .gte("date_time", "2024-01-02")
        .order("date_time", ascending=False)
        .range(1, 2)
        .execute()
    )
    assert res.error is None
    assert res.data == [{"reason": "Seduta 3"}, {"reason": "Seduta 2"}]


def test_or_filter_and_in(client, practitioner):
    for name in ["Giulia", "Marco", "Luca"]:
        client.from_("patients").insert({
            "practitioner_id": practitioner["id"], "gender": "M", "first_name": name,
            "last_name": "Rossi", "birth_date": "1980-01-01", "phone": "1",
        }).execute()

    res = client.from_("patients").select("first_name").or_("first_name.ilike.giu%,first_name.eq.Luca") \
        .order("first_name").execute()
    assert [r["first_name"] for r in res.data] == ["Giulia", "Luca"]

    res = client.from_("patients").select("first_name").in_("first_name", ["Marco"]).execute()
    assert res.data == [{"first_name": "Marco"}]


def test_count_exact_with_head(client, patient):
    for i in range(3):
        _consultation(client, patient, reason=f"R{i}")

    res = client.from_("consultations").select("*", count="exact", head=True).execute()
    assert res.error is None
    assert res.count == 3
    assert res.data is None

    res = client.from_("consultations").select("id", count="exact").limit(1).execute()
    assert res.count == 3
    assert len(res.data) == 1


def test_to_one_relation_with_projection(client, patient):
    _consultation(client, patient)
    res = client.from_("consultations").select("reason, patient:patients(first_name)").execute()
    assert res.error is None
    assert res.data == [{"reason": "Lombalgia", "patient": {"first_name": "Giulia"}}]


def test_null_foreign_key_gives_none(client, patient):
    _consultation(client, patient)
    res = client.from_("consultations").select("id, session_type:session_types(*)").single().execute()
    assert res.data["session_type"] is None


def test_to_many_relation_every_parent_has_list(client, practitioner, patient):
    other = client.from_("patients").insert({
        "practitioner_id": practitioner["id"], "gender": "M", "first_name": "Paolo",
        "last_name": "Blu", "birth_date": "1970-01-01", "phone": "2",
    }).execute().data
    _consultation(client, patient, reason="A")
    _consultation(client, patient, reason="B")

    res = client.from_("patients").select("id, consultations(reason)").order("first_name").execute()
    assert res.error is None
    by_id = {r["id"]: r for r in res.data}
    assert sorted(c["reason"] for c in by_id[patient["id"]]["consultations"]) == ["A", "B"]
    assert by_id[other["id"]]["consultations"] == []


def test_nested_relations(client, patient):
    consultation = _consultation(client, patient)
    invoice = client.from_("invoices").insert({
        "consultation_id": consultation["id"],
        "invoice_number": "FACT-0001",
        "amount": 60,
    }).select().execute()
    assert invoice.error is None, invoice.error

    res = client.from_("invoices").select(
        "invoice_number, consultation:consultations(reason, patient:patients(last_name))"
    ).single().execute()
    assert res.error is None
    assert res.data == {
        "invoice_number": "FACT-0001",
        "consultation": {"reason": "Lombalgia", "patient": {"last_name": "Neri"}},
    }


@pytest.mark.parametrize("parent_count", [1, 1000])
def test_to_many_fetch_is_one_statement(client, practitioner, statements, parent_count):
    rows = [
        {
            "practitioner_id": practitioner["id"], "gender": "F", "first_name": f"P{i}",
            "last_name": "X", "birth_date": "2000-01-01", "phone": "0",
        }
        for i in range(parent_count)
    ]
    assert client.from_("patients").insert(rows).execute().error is None

    statements.reset()
    res = client.from_("patients").select("id, consultations(*)").execute()
    assert res.error is None
    assert len(res.data) == parent_count
    assert all(r["consultations"] == [] for r in res.data)
    assert len(statements.matching("FROM consultations")) == 1


def test_update_with_returning(client, patient):
    consultation = _consultation(client, patient)
    res = client.from_("consultations").update({"follow_up_7d": True}) \
        .eq("id", consultation["id"]).select().single().execute()
    assert res.error is None
    assert res.data["follow_up_7d"] is True
    assert res.data["updated_at"].endswith("Z")


def test_update_matching_nothing_returns_empty_list(client):
    res = client.from_("patients").update({"notes": "x"}).eq("id", "missing").select().execute()
    assert res.error is None
    assert res.data == []


def test_update_returning_reselects_by_same_where(client, patient):
    _consultation(client, patient, reason="Vecchio")
    res = client.from_("consultations").update({"reason": "Nuovo"}).eq("reason", "Vecchio").select("reason").execute()
    assert res.error is None
    # la rilettura usa lo stesso WHERE: le righe non corrispondono più
    assert res.data == []

    stored = client.from_("consultations").select("reason").execute()
    assert stored.data == [{"reason": "Nuovo"}]


def test_update_returning_with_relations(client, patient):
    consultation = _consultation(client, patient)
    res = client.from_("consultations").update({"advice": "Riposo"}).eq("id", consultation["id"]) \
        .select("advice, patient:patients(first_name)").single().execute()
    assert res.error is None
    assert res.data == {"advice": "Riposo", "patient": {"first_name": "Giulia"}}


def test_lifecycle_insert_update_delete(client, practitioner):
    created = client.from_("patients").insert({
        "practitioner_id": practitioner["id"], "gender": "M", "first_name": "Ugo",
        "last_name": "Gialli", "birth_date": "1960-01-01", "phone": "9",
    }).select().single().execute()
    assert created.error is None
    pid = created.data["id"]

    updated = client.from_("patients").update({"notes": "allergie"}).eq("id", pid).select("notes").single().execute()
    assert updated.data == {"notes": "allergie"}

    deleted = client.from_("patients").delete().eq("id", pid).execute()
    assert deleted.error is None
    assert deleted.data is None

    missing = client.from_("patients").select().eq("id", pid).single().execute()
    assert missing.error.code == NOT_FOUND_CODE


def test_constraint_errors_mapped(client, practitioner):
    res = client.from_("patients").insert({
        "practitioner_id": practitioner["id"], "gender": "X", "first_name": "A",
        "last_name": "B", "birth_date": "2000-01-01", "phone": "0",
    }).execute()
    assert res.data is None
    assert res.error.code == "23514"

    res = client.from_("patients").insert({
        "practitioner_id": "nope", "gender": "F", "first_name": "A",
        "last_name": "B", "birth_date": "2000-01-01", "phone": "0",
    }).execute()
    assert res.error.code == "23503"

    res = client.from_("patients").insert({"practitioner_id": practitioner["id"], "gender": "F"}).execute()
    assert res.error.code == "23502"


def test_failed_batch_insert_is_atomic(client, practitioner):
    res = client.from_("session_types").insert([
        {"practitioner_id": practitioner["id"], "name": "ok", "price": 1},
        {"practitioner_id": practitioner["id"], "name": None, "price": 1},
    ]).execute()
    assert res.error is not None
    assert client.from_("session_types").select("id").execute().data == []


def test_invalid_identifier_is_an_error_result(client):
    res = client.from_("patients").select("id; DROP TABLE patients").execute()
    assert res.data is None
    assert res.error.code == "PGRST100"


def test_unknown_table_is_an_error_result(client):
    res = client.from_("nonexistent").select().execute()
    assert res.data is None
    assert "no such table" in res.error.message


def test_builder_executes_once(client, practitioner, statements):
    builder = client.from_("practitioners").select("id")
    statements.reset()
    first = builder.execute()
    second = builder.execute()
    assert first is second
    assert len(statements.matching("FROM practitioners")) == 1


@pytest.mark.asyncio
async def test_await_builder(client, practitioner):
    res = await client.from_("practitioners").select("email").eq("id", practitioner["id"]).single()
    assert res.data == {"email": "anna@studio.local"}


def test_result_to_dict(client):
    res = client.from_("patients").select("*", count="exact").execute()
    assert res.to_dict() == {"data": [], "error": None, "count": 0}


def test_head_without_count_returns_rows(client, patient):
    _consultation(client, patient)
    res = client.from_("consultations").select("reason", head=True).execute()
    assert res.error is None
    assert res.count is None
    assert res.data == [{"reason": "Lombalgia"}]


def test_nested_to_one_fetch_is_one_statement_per_relation(client, practitioner, patient, statements):
    other = client.from_("patients").insert({
        "practitioner_id": practitioner["id"], "gender": "M", "first_name": "Paolo",
        "last_name": "Blu", "birth_date": "1970-01-01", "phone": "2",
    }).execute().data
    for i in range(6):
        owner = patient if i % 2 else other
        consultation = _consultation(client, owner, reason=f"Seduta {i}")
        res = client.from_("invoices").insert({
            "consultation_id": consultation["id"],
            "invoice_number": f"FACT-{i:04d}",
            "amount": 50 + i,
        }).execute()
        assert res.error is None, res.error

    statements.reset()
    res = client.from_("invoices").select(
        "*, consultation:consultations(*, patient:patients(*))"
    ).order("invoice_number").execute()

    assert res.error is None
    assert len(res.data) == 6
    assert [r["consultation"]["reason"] for r in res.data] == [f"Seduta {i}" for i in range(6)]
    assert {r["consultation"]["patient"]["first_name"] for r in res.data} == {"Giulia", "Paolo"}
    assert len(statements.matching("FROM invoices")) == 1
    assert len(statements.matching("FROM consultations")) == 1
    assert len(statements.matching("FROM patients")) == 1


def test_in_with_none_is_not_raised(client, practitioner):
    builder = client.from_("practitioners").select("id").in_("id", None)
    res = builder.execute()
    assert res.error is None
    assert res.data == []


@pytest.mark.parametrize("bad", [["not", "a", "descriptor"], "patients", 42, None])
def test_run_rejects_non_mapping_descriptor(client, bad):
    with pytest.raises(ValueError):
        client.run(bad)


def test_run_rejects_malformed_parts(client):
    with pytest.raises(ValueError):
        client.run({"table": "patients", "conditions": ["id.eq.1"]})
    with pytest.raises(ValueError):
        client.run({"table": "patients", "orders": [{"ascending": False}]})
