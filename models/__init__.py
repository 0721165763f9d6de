"""SQLAlchemy models package.

Important: this project uses a single declarative Base defined in `db.py`.
Final tables live in the `kbo` namespace and are mapped as ORM classes;
staging tables live in `kbo_stg` and are plain Core tables (see
`models.staging`). Both register on `Base.metadata`, so one
`Base.metadata.create_all()` creates everything once the namespaces exist.
"""

from db import Base  # re-export a single shared Base

# Import models so they are registered with SQLAlchemy metadata on startup.
from models.codes import Code  # noqa: F401
from models.enterprises import Branch, Enterprise, Establishment  # noqa: F401
from models.denominations import Denomination  # noqa: F401
from models.addresses import Address  # noqa: F401
from models.contacts import Contact  # noqa: F401
from models.activities import Activity  # noqa: F401
from models.extract_meta import ExtractMeta  # noqa: F401
from models import staging  # noqa: F401
