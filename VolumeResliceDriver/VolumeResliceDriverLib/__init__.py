from .config import (
    DRIVER_ATTRIBUTE,
    FLIP_ATTRIBUTE,
    MODE_ATTRIBUTE,
    ROTATION_ATTRIBUTE,
    DriverBinding,
    readBinding,
    writeBinding,
)
from .dispatcher import ResliceDispatcher
from .drivers import (
    LineLandmark,
    PlaneLandmark,
    PointLandmark,
    RigidFrame,
    VolumetricImage,
    extractPose,
    isSupportedDriver,
)
from .modes import (
    MODE_AXIAL,
    MODE_CORONAL,
    MODE_INPLANE,
    MODE_INPLANE90,
    MODE_NAMES,
    MODE_NONE,
    MODE_SAGITTAL,
    MODE_TRANSVERSE,
    composeSliceToWorld,
    modeFromName,
)
from .orthonormalize import arrayFromVTKMatrix, orthonormalizePose, vtkMatrixFromArray
from .registry import DriverRegistry
from .scene import ModifiedEvent, ResliceScene
