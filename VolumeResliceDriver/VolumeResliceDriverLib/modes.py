"""
Slice modes and composition of the slice-to-world matrix.

AXIAL, SAGITTAL and CORONAL only follow the position of the driver and keep
the slice aligned with world axes. INPLANE, INPLANE90 and TRANSVERSE follow
the full driver pose. The order of the rotations encodes the left/right and
anterior/posterior display conventions, do not reorder them.
"""

import vtk

MODE_NONE = 0
MODE_AXIAL = 1
MODE_SAGITTAL = 2
MODE_CORONAL = 3
MODE_INPLANE = 4
MODE_INPLANE90 = 5
MODE_TRANSVERSE = 6

MODE_NAMES = {
    MODE_NONE: 'None',
    MODE_AXIAL: 'Axial',
    MODE_SAGITTAL: 'Sagittal',
    MODE_CORONAL: 'Coronal',
    MODE_INPLANE: 'InPlane',
    MODE_INPLANE90: 'InPlane90',
    MODE_TRANSVERSE: 'Transverse',
}


def modeFromName(name):
    for mode, modeName in MODE_NAMES.items():
        if modeName.lower() == name.lower():
            return mode
    raise ValueError(f"Unknown slice mode name: {name}")


def isValidMode(mode):
    return mode in MODE_NAMES


def _translationOf(driverToWorld):
    translation = vtk.vtkTransform()
    translation.Translate(driverToWorld.GetElement(0, 3),
                          driverToWorld.GetElement(1, 3),
                          driverToWorld.GetElement(2, 3))
    return translation


def _axial(transform, driverToWorld, rotation, flip):
    transform.Concatenate(_translationOf(driverToWorld))
    transform.RotateZ(rotation + 180.0)
    transform.RotateX(flip * 180.0 + 180.0)


def _sagittal(transform, driverToWorld, rotation, flip):
    transform.Concatenate(_translationOf(driverToWorld))
    transform.RotateX(rotation - 90.0)
    transform.RotateZ(flip * 180.0 + 180.0)
    transform.RotateY(90.0)  # first, rotate to sagittal plane


def _coronal(transform, driverToWorld, rotation, flip):
    transform.Concatenate(_translationOf(driverToWorld))
    transform.RotateY(rotation + 180.0)  # third, rotate
    transform.RotateX(flip * 180.0 + 180.0)  # second, flip
    transform.RotateX(90.0)  # first, rotate to coronal plane


def _inPlane(transform, driverToWorld, rotation, flip):
    transform.Concatenate(driverToWorld)
    transform.RotateX(-90.0)
    transform.RotateY(90.0)
    transform.RotateZ(rotation)
    transform.RotateX(flip * 180.0)


def _inPlane90(transform, driverToWorld, rotation, flip):
    transform.Concatenate(driverToWorld)
    transform.RotateX(-90.0)
    transform.RotateZ(rotation)
    transform.RotateX(flip * 180.0)


def _transverse(transform, driverToWorld, rotation, flip):
    transform.Concatenate(driverToWorld)
    transform.RotateZ(rotation)
    transform.RotateX(flip * 180.0)


sliceToDriverRules = {
    MODE_AXIAL: _axial,
    MODE_SAGITTAL: _sagittal,
    MODE_CORONAL: _coronal,
    MODE_INPLANE: _inPlane,
    MODE_INPLANE90: _inPlane90,
    MODE_TRANSVERSE: _transverse,
}


def composeSliceToWorld(driverToWorld, mode, rotation=0.0, flip=False):
    """
    Combine an orthonormal driver-to-world vtkMatrix4x4 with a slice mode,
    an in-plane rotation (degrees) and a flip flag.

    Returns a new vtkMatrix4x4, or None for MODE_NONE meaning the slice
    must be left where it is.
    """
    rule = sliceToDriverRules.get(mode)
    if rule is None:
        return None
    # vtkTransform is in PreMultiply mode: each call is applied in the frame
    # produced by the previous ones
    sliceToWorldTransform = vtk.vtkTransform()
    sliceToWorldTransform.Identity()
    rule(sliceToWorldTransform, driverToWorld, float(rotation), 1.0 if flip else 0.0)
    sliceToWorldTransform.Update()

    sliceToWorld = vtk.vtkMatrix4x4()
    sliceToWorld.DeepCopy(sliceToWorldTransform.GetMatrix())
    return sliceToWorld
