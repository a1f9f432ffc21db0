from ambulatorio.select_parser import parse_select, split_top_level


def test_plain_columns():
    parsed = parse_select("id, first_name ,last_name")
    assert parsed.columns == ["id", "first_name", "last_name"]
    assert parsed.relations == []


def test_empty_select():
    parsed = parse_select("")
    assert parsed.columns == []
    assert parsed.relations == []


def test_aliased_relation():
    parsed = parse_select("*, patient:patients (id, first_name)")
    assert parsed.columns == ["*"]
    assert len(parsed.relations) == 1
    rel = parsed.relations[0]
    assert rel.alias == "patient"
    assert rel.table == "patients"
    assert rel.column_names == ["id", "first_name"]
    assert rel.nested == []


def test_nested_relations_any_depth():
    text = (
        "*, invoice:invoices(*, consultation:consultations(*, "
        "patient:patients(*, practitioner:practitioners(id))))"
    )
    parsed = parse_select(text)
    assert parsed.columns == ["*"]
    assert sum(r.count() for r in parsed.relations) == 4

    invoice = parsed.relations[0]
    consultation = invoice.nested[0]
    patient = consultation.nested[0]
    practitioner = patient.nested[0]
    assert (invoice.table, consultation.table, patient.table, practitioner.table) == (
        "invoices", "consultations", "patients", "practitioners",
    )
    assert practitioner.column_names == ["id"]


def test_siblings_and_relation_text_excluded_from_columns():
    parsed = parse_select("id, patient:patients(*), session_type:session_types(name, price), reason")
    assert parsed.columns == ["id", "reason"]
    assert [r.alias for r in parsed.relations] == ["patient", "session_type"]


def test_unaliased_relation_uses_table_as_alias():
    parsed = parse_select("*, payments(*)")
    assert parsed.relations[0].alias == "payments"
    assert parsed.relations[0].table == "payments"


def test_unaliased_skipped_when_table_already_captured():
    parsed = parse_select("patient:patients(*), patients(id)")
    assert len(parsed.relations) == 1
    assert parsed.relations[0].alias == "patient"


def test_duplicate_alias_dropped():
    parsed = parse_select("p:patients(id), p:practitioners(id)")
    assert len(parsed.relations) == 1
    assert parsed.relations[0].table == "patients"


def test_empty_inner_means_all_columns():
    parsed = parse_select("patient:patients()")
    assert parsed.relations[0].columns == "*"
    assert parsed.relations[0].column_names == ["*"]


def test_relation_only_projection_has_no_plain_columns():
    parsed = parse_select("patient:patients(*)")
    assert parsed.columns == []


def test_unbalanced_text_never_raises():
    parsed = parse_select("id, patient:patients(id, name")
    assert parsed.relations == []
    assert "id" in parsed.columns


def test_split_top_level_ignores_nested_commas():
    assert split_top_level("a, b:c(d, e(f, g)), h") == ["a", " b:c(d, e(f, g))", " h"]
