import logging
import math

from .config import DRIVER_ATTRIBUTE, DriverBinding, writeBinding
from .drivers import isSupportedDriver
from .modes import isValidMode
from .scene import ModifiedEvent


class DriverRegistry:
    """
    Owns the slice bindings and the observations of driver nodes.

    Each slice has at most one binding. Each driver node is observed once,
    however many slices it drives, and stops being observed when the last
    slice bound to it goes away. Driver notifications are forwarded to
    onDriverModified(driverId, event).

    Changes are reported to modified observers (the Slicer logic forwards
    them to its bindings-modified observers). Calls wrapped in
    startModify()/endModify() report only once, when the outermost call ends.
    """

    def __init__(self, scene, onDriverModified=None):
        self.scene = scene
        self.onDriverModified = onDriverModified
        # sliceId -> DriverBinding, in bind order
        self._bindings = {}
        # driverId -> observer tags returned by the scene
        self._observations = {}
        self._modifyCount = 0
        self._modifiedPending = False
        self._modifiedObservers = []

    #
    # Modification batching
    #

    def addModifiedObserver(self, callback):
        self._modifiedObservers.append(callback)

    def removeModifiedObserver(self, callback):
        if callback in self._modifiedObservers:
            self._modifiedObservers.remove(callback)

    def startModify(self):
        wasModifying = self._modifyCount > 0
        self._modifyCount += 1
        return wasModifying

    def endModify(self, wasModifying):
        self._modifyCount -= 1
        if not wasModifying and self._modifiedPending:
            self._invokeModified()

    def modified(self):
        self._modifiedPending = True
        if self._modifyCount == 0:
            self._invokeModified()

    def _invokeModified(self):
        self._modifiedPending = False
        for callback in list(self._modifiedObservers):
            callback()

    #
    # Bindings
    #

    def binding(self, sliceId):
        return self._bindings.get(sliceId)

    def bindings(self):
        return list(self._bindings.values())

    def slicesForDriver(self, driverId):
        return [binding.sliceId for binding in self._bindings.values() if binding.driverId == driverId]

    def _bindingForUpdate(self, sliceId):
        if not sliceId:
            raise ValueError("A slice id is required")
        binding = self._bindings.get(sliceId)
        if binding is None:
            binding = DriverBinding(sliceId)
            self._bindings[sliceId] = binding
        return binding

    def setDriver(self, sliceId, driverId):
        """
        Bind the slice to a driver node. Returns the driver snapshot, or None
        if driverId is None or does not refer to a node that can drive a
        slice; in that case the slice is detached from its current driver.
        """
        if not sliceId:
            raise ValueError("A slice id is required")
        driver = self.scene.getDriver(driverId) if driverId else None
        wasModifying = self.startModify()
        try:
            if not isSupportedDriver(driver):
                if driverId:
                    logging.warning(f"Node {driverId} cannot drive slice {sliceId}, slice is detached")
                self._detach(sliceId)
                return None

            # re-binding moves the slice to the end of the bind order
            binding = self._bindings.pop(sliceId, None) or DriverBinding(sliceId)
            previousDriverId = binding.driverId
            binding.driverId = driver.nodeId
            self._bindings[sliceId] = binding
            writeBinding(self.scene, binding)
            if previousDriverId != driver.nodeId:
                self._releaseIfUnused(previousDriverId)
            self.observeDriver(driver)
            self.modified()
            return driver
        finally:
            self.endModify(wasModifying)

    def _detach(self, sliceId):
        binding = self._bindings.get(sliceId)
        if binding is None or binding.driverId is None:
            self.scene.removeSliceAttribute(sliceId, DRIVER_ATTRIBUTE)
            return
        previousDriverId = binding.driverId
        binding.driverId = None
        writeBinding(self.scene, binding)
        self._releaseIfUnused(previousDriverId)
        self.modified()

    def detachDriver(self, driverId):
        """Detach every slice driven by driverId and stop observing it"""
        wasModifying = self.startModify()
        try:
            for sliceId in self.slicesForDriver(driverId):
                self._detach(sliceId)
            self.releaseDriver(driverId)
        finally:
            self.endModify(wasModifying)

    def removeBinding(self, sliceId):
        binding = self._bindings.pop(sliceId, None)
        if binding is None:
            return
        self._releaseIfUnused(binding.driverId)
        self.modified()

    def setMode(self, sliceId, mode):
        if not isValidMode(mode):
            raise ValueError(f"Invalid slice mode: {mode}")
        binding = self._bindingForUpdate(sliceId)
        binding.mode = int(mode)
        writeBinding(self.scene, binding)
        self.modified()
        return binding

    def setRotation(self, sliceId, rotation):
        rotation = float(rotation)
        if not math.isfinite(rotation):
            raise ValueError(f"Invalid slice rotation: {rotation}")
        binding = self._bindingForUpdate(sliceId)
        binding.rotation = rotation
        writeBinding(self.scene, binding)
        self.modified()
        return binding

    def setFlip(self, sliceId, flip):
        binding = self._bindingForUpdate(sliceId)
        binding.flip = bool(flip)
        writeBinding(self.scene, binding)
        self.modified()
        return binding

    def replaceBindings(self, bindings):
        """Replace the whole binding table, e.g. after a scene was loaded.
        Drivers no longer referenced are released, new drivers are not
        observed here."""
        wasModifying = self.startModify()
        try:
            self._bindings = {binding.sliceId: binding for binding in bindings}
            for driverId in self.observedDriverIds():
                self._releaseIfUnused(driverId)
            self.modified()
        finally:
            self.endModify(wasModifying)

    #
    # Observations
    #

    def observedDriverIds(self):
        return list(self._observations.keys())

    def isObserved(self, driverId):
        return driverId in self._observations

    def observeDriver(self, driver):
        if driver.nodeId in self._observations:
            return
        events = [ModifiedEvent]
        for event in driver.events:
            if event in events:
                continue
            events.append(event)
        tags = self.scene.addObserver(driver.nodeId, events, self._onDriverEvent)
        self._observations[driver.nodeId] = tags
        logging.info(f"Observing reslice driver {driver.nodeId}")
        self.modified()

    def releaseDriver(self, driverId):
        tags = self._observations.pop(driverId, None)
        if tags is None:
            return
        self.scene.removeObserver(driverId, tags)
        logging.info(f"Stopped observing reslice driver {driverId}")
        self.modified()

    def _releaseIfUnused(self, driverId):
        if driverId is not None and not self.slicesForDriver(driverId):
            self.releaseDriver(driverId)

    def _onDriverEvent(self, driverId, event):
        if self.onDriverModified is not None:
            self.onDriverModified(driverId, event)

    def clearAll(self):
        wasModifying = self.startModify()
        try:
            for driverId in self.observedDriverIds():
                self.releaseDriver(driverId)
            self._bindings = {}
            self.modified()
        finally:
            self.endModify(wasModifying)
