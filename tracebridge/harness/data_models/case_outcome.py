# tracebridge/harness/data_models/case_outcome.py
# CaseOutcome data class produced by the CaseRunner for every case.

from dataclasses import dataclass
from typing import Optional

from tracebridge.transport.exception_record import ExceptionRecord


STATUS_PASSED:               str = "PASSED"
STATUS_FAILED:               str = "FAILED"
STATUS_INFRASTRUCTURE_ERROR: str = "INFRASTRUCTURE_ERROR"


@dataclass(frozen=True)
class CaseOutcome:
    """
    Outcome of one case after expectation routing.

    Fields:
      case_id         -- Identifier of the case.
      status          -- STATUS_PASSED, STATUS_FAILED or
                         STATUS_INFRASTRUCTURE_ERROR.
      failure_type_id -- Key from FAILURE_TYPES when not passed; empty
                         string otherwise.
      detail          -- Human-readable description; empty on a plain pass.
      record          -- Decoded exception record if the case threw.
      anomalies       -- tuple of str anomaly kinds reported while the
                         record was built; empty when not known.
    """
    case_id:         str
    status:          str
    failure_type_id: str = ""
    detail:          str = ""
    record:          Optional[ExceptionRecord] = None
    anomalies:       tuple = ()

    @property
    def passed(self) -> bool:
        return self.status == STATUS_PASSED
