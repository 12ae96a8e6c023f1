from .work_order import WorkOrder, WorkOrderArea, WorkOrderLineItem  # noqa: F401
