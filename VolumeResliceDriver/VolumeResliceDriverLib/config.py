"""
Per-slice reslice configuration.

Inside the module configuration is a DriverBinding. In the scene it is
stored as string attributes on the slice node so it is saved and restored
with the scene; readBinding and writeBinding are the only places that
convert between the two.
"""

import logging
import math

from .modes import MODE_NONE, isValidMode

DRIVER_ATTRIBUTE = "VolumeResliceDriver.Driver"
MODE_ATTRIBUTE = "VolumeResliceDriver.Mode"
ROTATION_ATTRIBUTE = "VolumeResliceDriver.Rotation"
FLIP_ATTRIBUTE = "VolumeResliceDriver.Flip"

TRUE_STRINGS = ("1", "true", "yes", "on")
FALSE_STRINGS = ("0", "false", "no", "off", "")


class DriverBinding:
    """Driver and display settings of one slice. driverId is None when the
    slice has settings but is not driven."""

    def __init__(self, sliceId, driverId=None, mode=MODE_NONE, rotation=0.0, flip=False):
        self.sliceId = sliceId
        self.driverId = driverId
        self.mode = mode
        self.rotation = rotation
        self.flip = flip

    @property
    def isActive(self):
        return self.driverId is not None

    def __eq__(self, other):
        if not isinstance(other, DriverBinding):
            return NotImplemented
        return (self.sliceId, self.driverId, self.mode, self.rotation, self.flip) == \
               (other.sliceId, other.driverId, other.mode, other.rotation, other.flip)

    def __repr__(self):
        return (f"DriverBinding(sliceId={self.sliceId!r}, driverId={self.driverId!r}, "
                f"mode={self.mode}, rotation={self.rotation}, flip={self.flip})")


def parseMode(value):
    if value is None:
        return MODE_NONE
    try:
        mode = int(value.strip())
    except ValueError:
        logging.warning(f"Invalid reslice mode attribute '{value}', using None mode")
        return MODE_NONE
    if not isValidMode(mode):
        logging.warning(f"Unknown reslice mode {mode}, using None mode")
        return MODE_NONE
    return mode


def parseRotation(value):
    if value is None:
        return 0.0
    try:
        rotation = float(value)
    except ValueError:
        rotation = math.nan
    if not math.isfinite(rotation):
        logging.warning(f"Invalid reslice rotation attribute '{value}', using 0")
        return 0.0
    return rotation


def parseFlip(value):
    if value is None:
        return False
    text = value.strip().lower()
    if text in TRUE_STRINGS:
        return True
    if text in FALSE_STRINGS:
        return False
    try:
        return float(text) != 0.0
    except ValueError:
        logging.warning(f"Invalid reslice flip attribute '{value}', flip is off")
        return False


def formatMode(mode):
    return str(int(mode))


def formatRotation(rotation):
    return '%.17g' % rotation


def formatFlip(flip):
    return "1" if flip else "0"


def readBinding(scene, sliceId):
    """Build the binding of a slice from its persisted attributes"""
    driverId = scene.getSliceAttribute(sliceId, DRIVER_ATTRIBUTE) or None
    return DriverBinding(
        sliceId,
        driverId=driverId,
        mode=parseMode(scene.getSliceAttribute(sliceId, MODE_ATTRIBUTE)),
        rotation=parseRotation(scene.getSliceAttribute(sliceId, ROTATION_ATTRIBUTE)),
        flip=parseFlip(scene.getSliceAttribute(sliceId, FLIP_ATTRIBUTE)),
    )


def writeBinding(scene, binding):
    sliceId = binding.sliceId
    if binding.driverId is None:
        scene.removeSliceAttribute(sliceId, DRIVER_ATTRIBUTE)
    else:
        scene.setSliceAttribute(sliceId, DRIVER_ATTRIBUTE, binding.driverId)
    scene.setSliceAttribute(sliceId, MODE_ATTRIBUTE, formatMode(binding.mode))
    scene.setSliceAttribute(sliceId, ROTATION_ATTRIBUTE, formatRotation(binding.rotation))
    scene.setSliceAttribute(sliceId, FLIP_ATTRIBUTE, formatFlip(binding.flip))
