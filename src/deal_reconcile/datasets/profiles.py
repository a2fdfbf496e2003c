from __future__ import annotations

from deal_reconcile.schema import DealSchema, FieldTag, PipelineLayout

# Column names as exported by the Bigin CRM deals API.
BIGIN_COLUMNS = [
    "id",
    "Deal_Name",
    "Telefono",
    "email",
    "CallBell",
    "Direcci_n",
    "Municipio_Dept",
    "Departamento",
    "Amount",
    "Stage",
    "Pipeline",
    "Sub_Pipeline",
    "Created_Time",
    "Modified_Time",
]


BIGIN_SCHEMA = DealSchema.from_mapping(
    {
        FieldTag.ID: "id",
        FieldTag.NAME: "Deal_Name",
        FieldTag.PHONE: "Telefono",
        FieldTag.EMAIL: "email",
        FieldTag.CHAT_LINK: "CallBell",
        FieldTag.ADDRESS: "Direcci_n",
        FieldTag.CITY: "Municipio_Dept",
        FieldTag.REGION: "Departamento",
        FieldTag.AMOUNT: "Amount",
        FieldTag.STAGE: "Stage",
        FieldTag.PIPELINE: "Pipeline",
        FieldTag.SUB_PIPELINE: "Sub_Pipeline",
        FieldTag.CREATED: "Created_Time",
        FieldTag.MODIFIED: "Modified_Time",
    }
)


BIGIN_LAYOUT = PipelineLayout(
    pipeline="Ventas Somnio",
    sales="Ventas Somnio Standard",
    logistics="LOGISTICA",
    shipping="ENVIOS SOMNIO",
)
