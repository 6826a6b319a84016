from .core import SQLADescriptor, build_descriptors  # noqa
from .store import SQLAStore  # noqa
