"""SQLAlchemy ORM models for the CARF kernel."""

from carf_kernel.models.approval_matrix import ApprovalMatrixModel, BusinessCenterApproverModel
from carf_kernel.models.customer_request import CustomerRequestModel, patch_columns
from carf_kernel.models.directory import CustomerTypeSeriesModel, ExecutiveObserverModel, UserModel
from carf_kernel.models.notification import NotificationLogModel

__all__ = [
    "ApprovalMatrixModel",
    "BusinessCenterApproverModel",
    "CustomerRequestModel",
    "CustomerTypeSeriesModel",
    "ExecutiveObserverModel",
    "NotificationLogModel",
    "UserModel",
    "patch_columns",
]
