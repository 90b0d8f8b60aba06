# Models package: import all models here so Alembic can discover them.

from xistracloud.models.user import User  # noqa: F401
from xistracloud.models.project import Project  # noqa: F401
from xistracloud.models.deployment import Deployment  # noqa: F401
from xistracloud.models.domain import Domain  # noqa: F401
from xistracloud.models.environment_variable import EnvironmentVariable  # noqa: F401
from xistracloud.models.backup import Backup  # noqa: F401
from xistracloud.models.team import TeamMember, TeamInvitation  # noqa: F401
from xistracloud.models.system import SystemLog, SystemMetric  # noqa: F401
