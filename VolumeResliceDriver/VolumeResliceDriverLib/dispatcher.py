import logging

from .config import readBinding
from .drivers import extractPose, isSupportedDriver
from .modes import composeSliceToWorld
from .orthonormalize import orthonormalizePose
from .registry import DriverRegistry


class ResliceDispatcher:
    """
    Moves slices when the nodes driving them move.

    This is the entry point used by the Slicer logic and by scripts:
    configuration calls go through here, and driver notifications from the
    scene come back to onDriverModified(). Updating a slice runs
    extractPose -> orthonormalizePose -> composeSliceToWorld and commits
    the result to the scene.
    """

    def __init__(self, scene):
        self.scene = scene
        self.registry = DriverRegistry(scene, onDriverModified=self.onDriverModified)
        # drivers whose notification is being processed
        self._updatingDrivers = set()

    #
    # Configuration
    #

    def setDriverForSlice(self, driverId, sliceId):
        wasModifying = self.registry.startModify()
        try:
            driver = self.registry.setDriver(sliceId, driverId)
            if driver is not None:
                self._updateSliceFromDriver(driver, sliceId)
        finally:
            self.registry.endModify(wasModifying)

    def setModeForSlice(self, mode, sliceId):
        wasModifying = self.registry.startModify()
        try:
            self.registry.setMode(sliceId, mode)
            self.updateSlice(sliceId)
        finally:
            self.registry.endModify(wasModifying)

    def setRotationForSlice(self, rotation, sliceId):
        wasModifying = self.registry.startModify()
        try:
            self.registry.setRotation(sliceId, rotation)
            self.updateSlice(sliceId)
        finally:
            self.registry.endModify(wasModifying)

    def setFlipForSlice(self, flip, sliceId):
        wasModifying = self.registry.startModify()
        try:
            self.registry.setFlip(sliceId, flip)
            self.updateSlice(sliceId)
        finally:
            self.registry.endModify(wasModifying)

    def rescanScene(self):
        """
        Rebuild bindings and observations from the attributes stored on the
        slices, e.g. after a scene was loaded or imported. Slices are not
        moved until their driver changes or their configuration is set.
        """
        wasModifying = self.registry.startModify()
        try:
            bindings = []
            drivers = {}
            for sliceId in self.scene.getSliceIds():
                binding = readBinding(self.scene, sliceId)
                if binding.driverId is not None and binding.driverId not in drivers:
                    driver = self.scene.getDriver(binding.driverId)
                    if isSupportedDriver(driver):
                        drivers[binding.driverId] = driver
                    else:
                        logging.warning(f"Reslice driver {binding.driverId} of slice {sliceId} not found")
                if binding.driverId is not None and binding.driverId not in drivers:
                    binding.driverId = None
                bindings.append(binding)
            self.registry.replaceBindings(bindings)
            for driver in drivers.values():
                self.registry.observeDriver(driver)
        finally:
            self.registry.endModify(wasModifying)

    def onNodeRemoved(self, nodeId):
        if self.registry.binding(nodeId) is not None:
            self.registry.removeBinding(nodeId)
        if self.registry.isObserved(nodeId) or self.registry.slicesForDriver(nodeId):
            self.registry.detachDriver(nodeId)

    def clear(self):
        self.registry.clearAll()

    #
    # Slice updates
    #

    def onDriverModified(self, driverId, event=None):
        """Called by the scene when an observed driver node changed"""
        if driverId in self._updatingDrivers:
            return
        sliceIds = self.registry.slicesForDriver(driverId)
        if not sliceIds:
            return
        driver = self.scene.getDriver(driverId)
        if not isSupportedDriver(driver):
            logging.warning(f"Reslice driver {driverId} is no longer available")
            return
        self._updatingDrivers.add(driverId)
        try:
            for sliceId in sliceIds:
                try:
                    self._updateSliceFromDriver(driver, sliceId)
                except Exception:
                    logging.exception(f"Failed to update slice {sliceId} from driver {driverId}")
        finally:
            self._updatingDrivers.discard(driverId)

    def updateSlice(self, sliceId):
        """Recompute one slice if it has a driver. Returns True if the slice moved."""
        binding = self.registry.binding(sliceId)
        if binding is None or not binding.isActive:
            return False
        driver = self.scene.getDriver(binding.driverId)
        if not isSupportedDriver(driver):
            logging.warning(f"Reslice driver {binding.driverId} of slice {sliceId} is not available")
            return False
        return self._updateSliceFromDriver(driver, sliceId)

    def _updateSliceFromDriver(self, driver, sliceId):
        binding = self.registry.binding(sliceId)
        # the slice may have been rebound while this driver was dispatched
        if binding is None or binding.driverId != driver.nodeId:
            return False
        driverToWorld = extractPose(driver)
        if driverToWorld is None:
            logging.debug(f"Reslice driver {driver.nodeId} has no pose yet")
            return False
        driverToWorld = orthonormalizePose(driverToWorld)
        sliceToWorld = composeSliceToWorld(driverToWorld, binding.mode, binding.rotation, binding.flip)
        if sliceToWorld is None:
            return False
        self.scene.setSliceToWorld(sliceId, sliceToWorld)
        self.scene.sliceModified(sliceId)
        return True
