"""String enums for job and import state."""

from enum import StrEnum


class JobStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


class JobType(StrEnum):
    RATE_CARD_IMPORT = "rate_card_import"
    RATE_CARD_EXPORT = "rate_card_export"
    CONNEXCS_SYNC_CUSTOMER = "connexcs_sync_customer"
    CONNEXCS_SYNC_CARRIER = "connexcs_sync_carrier"
    CONNEXCS_SYNC_ALL = "connexcs_sync_all"
    DID_PROVISION = "did_provision"
    DID_BULK_PROVISION = "did_bulk_provision"
    DID_RELEASE = "did_release"
    INVOICE_GENERATE = "invoice_generate"
    INVOICE_BULK_GENERATE = "invoice_bulk_generate"
    EMAIL_SEND = "email_send"
    EMAIL_BULK_SEND = "email_bulk_send"
    REPORT_GENERATE = "report_generate"
    AI_VOICE_KB_TRAIN = "ai_voice_kb_train"
    AI_VOICE_KB_INDEX = "ai_voice_kb_index"
    AI_VOICE_CAMPAIGN_START = "ai_voice_campaign_start"
    AI_VOICE_CAMPAIGN_CALL = "ai_voice_campaign_call"
    AI_VOICE_AGENT_SYNC = "ai_voice_agent_sync"
    WEBHOOK_DELIVER = "webhook_deliver"
    FX_RATE_UPDATE = "fx_rate_update"
    BILLING_RECONCILE = "billing_reconcile"
    AUDIT_CLEANUP = "audit_cleanup"
    CDR_PROCESS = "cdr_process"
    AZ_DESTINATION_IMPORT = "az_destination_import"
    AZ_DESTINATION_DELETE_ALL = "az_destination_delete_all"
    TRASH_RESTORE = "trash_restore"
    TRASH_PURGE = "trash_purge"


class ImportMode(StrEnum):
    UPDATE = "update"
    REPLACE = "replace"


class SyncDirection(StrEnum):
    PUSH = "push"
    PULL = "pull"
    BIDIRECTIONAL = "bidirectional"
