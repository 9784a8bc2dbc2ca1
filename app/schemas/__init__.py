from app.schemas.documents import DocumentRef, DocumentSet, MoveInDocuments, MoveOutDocuments
from app.schemas.move_permit import MovePermitCreate, MovePermitResponse, MovePermitUpdate, TransitionRequest
from app.schemas.dashboard import PermitAuditLogEntry, PermitSummaryView
