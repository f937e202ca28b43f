"""
Interface to the scene that owns driver and slice nodes.

The reslice driver never touches the scene graph directly. Everything it
needs goes through an object with the methods below: the MRML adapter in
VolumeResliceDriver.py for Slicer, FakeResliceScene in the tests.
"""

import vtk

# Generic change notification every driver is observed for
ModifiedEvent = vtk.vtkCommand.ModifiedEvent


class ResliceScene:
    """Superclass for scenes the reslice driver can work on."""

    def getDriver(self, nodeId):
        """Return a driver snapshot (see drivers.py) or None if the node
        does not exist or cannot drive a slice."""
        raise NotImplementedError

    def addObserver(self, nodeId, events, callback):
        """Call callback(nodeId, event) whenever the node fires one of events.
        Returns the observer tags to pass to removeObserver."""
        raise NotImplementedError

    def removeObserver(self, nodeId, tags):
        raise NotImplementedError

    def getSliceIds(self):
        raise NotImplementedError

    def getSliceAttribute(self, sliceId, name):
        """Returns the attribute string or None if not set"""
        raise NotImplementedError

    def setSliceAttribute(self, sliceId, name, value):
        raise NotImplementedError

    def removeSliceAttribute(self, sliceId, name):
        raise NotImplementedError

    def setSliceToWorld(self, sliceId, matrix):
        """Copy a vtkMatrix4x4 into the slice's slice-to-world matrix"""
        raise NotImplementedError

    def sliceModified(self, sliceId):
        """Let consumers of the slice (views, other logics) know it moved"""
        raise NotImplementedError
