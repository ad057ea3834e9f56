import json

import pytest

from mobius_query.dvh import get_plan_check_dvh, parse_dvh, select_series
from mobius_query.errors import MissingInputError, ParseError
from mobius_query.models import PatientEntry, PlanCheckMatch, PlanSubmission
from mobius_query.payload import PayloadNode
from tests.helpers import FakeClient, detail, dvh, patient, plan


def test_parse_dvh_drops_malformed_samples():
    doc = {
        "data": [
            {"name": "PTV_70", "data": [[0, 100], [10], "x", [20, "95.5"]]},
            {"data": [[0, 100]]},
        ]
    }
    series = parse_dvh(json.dumps(doc), "c1")
    assert [s.name for s in series] == ["PTV_70"]
    assert series[0].points == ((0, 100), (20, 95.5))


def test_parse_dvh_errors():
    with pytest.raises(ParseError):
        parse_dvh("nope", "c1")
    with pytest.raises(ParseError):
        parse_dvh('{"series": []}', "c1")


def test_select_series_is_exact():
    series = parse_dvh(json.dumps(dvh("PTV_70", "PTV_70_eval")))
    assert select_series(series, "PTV_70").name == "PTV_70"
    assert select_series(series, "ptv_70") is None


def test_requires_cid():
    client = FakeClient()
    with pytest.raises(MissingInputError):
        get_plan_check_dvh(client)
    with pytest.raises(MissingInputError):
        get_plan_check_dvh(client, check={"request": {}})
    assert client.dvh_calls == []


def test_cid_from_match():
    client = FakeClient(dvhs={"c1": dvh("PTV_70", "Bladder")})
    found = PlanCheckMatch(
        PatientEntry.from_dict(patient("123")),
        PlanSubmission.from_dict(plan("Prostate", "c1")),
        PayloadNode(detail("c1")),
    )
    series = get_plan_check_dvh(client, check=found)
    assert [s.name for s in series] == ["PTV_70", "Bladder"]
    assert client.dvh_calls == ["c1"]


def test_cid_from_detail_document_and_explicit_cid():
    client = FakeClient(dvhs={"c1": dvh("PTV_70"), "c2": dvh("Rectum")})
    get_plan_check_dvh(client, check=detail("c1"))
    get_plan_check_dvh(client, check=PayloadNode(detail("c1")), cid="c2")
    assert client.dvh_calls == ["c1", "c2"]
