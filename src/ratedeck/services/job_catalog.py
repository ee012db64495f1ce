"""Display labels and category groupings for job types."""

from ratedeck.models.enums import JobType

JOB_TYPE_LABELS: dict[JobType, str] = {
    JobType.RATE_CARD_IMPORT: "Rate Card Import",
    JobType.RATE_CARD_EXPORT: "Rate Card Export",
    JobType.CONNEXCS_SYNC_CUSTOMER: "ConnexCS Customer Sync",
    JobType.CONNEXCS_SYNC_CARRIER: "ConnexCS Carrier Sync",
    JobType.CONNEXCS_SYNC_ALL: "ConnexCS Full Sync",
    JobType.DID_PROVISION: "DID Provision",
    JobType.DID_BULK_PROVISION: "DID Bulk Provision",
    JobType.DID_RELEASE: "DID Release",
    JobType.INVOICE_GENERATE: "Invoice Generation",
    JobType.INVOICE_BULK_GENERATE: "Bulk Invoice Generation",
    JobType.EMAIL_SEND: "Email Send",
    JobType.EMAIL_BULK_SEND: "Bulk Email Send",
    JobType.REPORT_GENERATE: "Report Generation",
    JobType.AI_VOICE_KB_TRAIN: "AI Voice KB Training",
    JobType.AI_VOICE_KB_INDEX: "AI Voice KB Indexing",
    JobType.AI_VOICE_CAMPAIGN_START: "AI Voice Campaign Start",
    JobType.AI_VOICE_CAMPAIGN_CALL: "AI Voice Campaign Call",
    JobType.AI_VOICE_AGENT_SYNC: "AI Voice Agent Sync",
    JobType.WEBHOOK_DELIVER: "Webhook Delivery",
    JobType.FX_RATE_UPDATE: "FX Rate Update",
    JobType.BILLING_RECONCILE: "Billing Reconciliation",
    JobType.AUDIT_CLEANUP: "Audit Log Cleanup",
    JobType.CDR_PROCESS: "CDR Processing",
    JobType.AZ_DESTINATION_IMPORT: "A-Z Destinations Import",
    JobType.AZ_DESTINATION_DELETE_ALL: "A-Z Destinations Delete All",
    JobType.TRASH_RESTORE: "Trash Restore",
    JobType.TRASH_PURGE: "Trash Purge",
}

JOB_TYPE_CATEGORIES: dict[str, list[JobType]] = {
    "Rate Cards": [JobType.RATE_CARD_IMPORT, JobType.RATE_CARD_EXPORT],
    "ConnexCS Sync": [
        JobType.CONNEXCS_SYNC_CUSTOMER,
        JobType.CONNEXCS_SYNC_CARRIER,
        JobType.CONNEXCS_SYNC_ALL,
    ],
    "DID Management": [JobType.DID_PROVISION, JobType.DID_BULK_PROVISION, JobType.DID_RELEASE],
    "Billing": [
        JobType.INVOICE_GENERATE,
        JobType.INVOICE_BULK_GENERATE,
        JobType.BILLING_RECONCILE,
    ],
    "Communications": [JobType.EMAIL_SEND, JobType.EMAIL_BULK_SEND, JobType.WEBHOOK_DELIVER],
    "AI Voice": [
        JobType.AI_VOICE_KB_TRAIN,
        JobType.AI_VOICE_KB_INDEX,
        JobType.AI_VOICE_CAMPAIGN_START,
        JobType.AI_VOICE_CAMPAIGN_CALL,
        JobType.AI_VOICE_AGENT_SYNC,
    ],
    "A-Z Database": [JobType.AZ_DESTINATION_IMPORT, JobType.AZ_DESTINATION_DELETE_ALL],
    "Audit & Trash": [JobType.AUDIT_CLEANUP, JobType.TRASH_RESTORE, JobType.TRASH_PURGE],
    "System": [JobType.REPORT_GENERATE, JobType.FX_RATE_UPDATE, JobType.CDR_PROCESS],
}


def labels_payload() -> dict[str, str]:
    return {str(job_type): label for job_type, label in JOB_TYPE_LABELS.items()}


def categories_payload() -> dict[str, list[str]]:
    return {
        category: [str(job_type) for job_type in job_types]
        for category, job_types in JOB_TYPE_CATEGORIES.items()
    }
