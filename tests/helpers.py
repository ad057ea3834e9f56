"""Builders for roster, detail and DVH documents plus an offline client."""

import json

from mobius_query.models import PatientEntry
from mobius_query.results import DOSE_TASK_KEY

# 2017-03-01 12:00 server-local (UTC-5)
NOON = 1488387600
HOUR = 3600


def plan(notes, cid, *, status="Complete", created=NOON, results=True):
    return {
        "notes": notes,
        "created_timestamp": created,
        "status": status,
        "request_cid": cid,
        "results": {"gamma": "done"} if results else {},
    }


def patient(pid, *plans, name="DOE^JANE"):
    return {"patientId": pid, "patientName": name, "cssId": f"css-{pid}", "plans": list(plans)}


def roster(*patients):
    return [PatientEntry.from_dict(p) for p in patients]


def detail(
    cid,
    *,
    machines=("TrueBeam1",),
    fractions=28,
    beams=(("VMAT", "MLC120", 6),),
    limit_set="Prostate 70Gy",
    rois=(("PTV_70", 120.5), ("Bladder", 300.0)),
    version=("1.0.0", "2.1.1"),
):
    data = {
        "beam_info": {
            "beam_num2info_dict": {
                str(2 * i + 1): {
                    "rotationType_str": rotation,
                    "mlcType_str": mlc,
                    "energy": {"value": energy},
                }
                for i, (rotation, mlc, energy) in enumerate(beams)
            }
        },
        "limitSet_data": {"humanReadableLimitSet_str": limit_set},
        "roiInfo_data": {
            "roi_num2basic_dict": {
                str(i + 1): {"ROIName": name, "volume": {"value": volume}}
                for i, (name, volume) in enumerate(rois)
            }
        },
        "treatmentPlanningSystem_info": {
            "softwareVersion_str": "13.6",
            "planningSystemName_str": "Eclipse",
        },
        "ct_info": {"patientPosition": "HFS"},
        "gamma_summary": {
            "criteria": {"dose": {"value": 0.03}, "maxDTA_mm": {"value": 3}},
            "histogram": {"histEdge_list": [0, 0.5, 1], "histCount_list": [10, 5]},
            "passingRate": {"value": 99.2},
        },
    }
    if machines:
        data["fractionGroup_info"] = {
            "fractionGroup_num2info_dict": {
                str(i + 1): {"TreatmentMachineName": m, "NumberofFractionsPlanned": fractions}
                for i, m in enumerate(machines)
            }
        }
    return {
        "data": data,
        "request": {
            "_id": cid,
            "planReceived_timestamp": "2017-03-01T12:00:00",
            "taskProc_dict": {DOSE_TASK_KEY: {"elapsed_time": 12.5}},
        },
        "version": list(version),
    }


def dvh(*names):
    return {"data": [{"name": n, "data": [[0, 100], [70, 95]]} for n in names]}


class FakeClient:
    """Stand-in for MobiusClient serving canned documents."""

    def __init__(self, patients=(), details=None, dvhs=None):
        self.patients = list(patients)
        self.details = details or {}
        self.dvhs = dvhs or {}
        self.roster_calls = 0
        self.detail_calls = []
        self.dvh_calls = []

    def fetch_roster(self, limit=None):
        self.roster_calls += 1
        return self.patients

    def fetch_check_detail(self, cid):
        self.detail_calls.append(cid)
        doc = self.details[cid]
        return doc if isinstance(doc, str) else json.dumps(doc)

    def fetch_dvh(self, cid):
        self.dvh_calls.append(cid)
        doc = self.dvhs[cid]
        return doc if isinstance(doc, str) else json.dumps(doc)
