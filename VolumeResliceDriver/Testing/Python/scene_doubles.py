import numpy as np

from VolumeResliceDriverLib import ModifiedEvent, ResliceScene, arrayFromVTKMatrix


class FakeResliceScene(ResliceScene):
    """In-memory scene for testing the reslice driver without Slicer.

    Drivers are snapshot objects, so moving a driver means replacing its
    snapshot with moveDriver(), which also fires the notification.
    """

    def __init__(self):
        self.drivers = {}
        self.plainNodes = set()
        self.sliceAttributes = {}
        self.sliceToWorld = {}
        # nodeId -> {tag: (events, callback)}
        self.observers = {}
        self.addObserverCount = 0
        self.sliceModifiedCount = {}
        self.failingSlices = set()
        self.onSliceModified = None
        self._nextTag = 1

    #
    # Test setup helpers
    #

    def addSlice(self, sliceId, attributes=None):
        self.sliceAttributes[sliceId] = dict(attributes or {})
        self.sliceToWorld[sliceId] = np.eye(4)
        self.sliceModifiedCount[sliceId] = 0

    def addDriver(self, driver):
        self.drivers[driver.nodeId] = driver

    def addPlainNode(self, nodeId):
        """A node that exists but cannot drive slices"""
        self.plainNodes.add(nodeId)

    def removeNode(self, nodeId):
        self.drivers.pop(nodeId, None)
        self.plainNodes.discard(nodeId)
        self.sliceAttributes.pop(nodeId, None)
        self.sliceToWorld.pop(nodeId, None)

    def fireEvent(self, nodeId, event=ModifiedEvent):
        for events, callback in list(self.observers.get(nodeId, {}).values()):
            if event in events:
                callback(nodeId, event)

    def moveDriver(self, driver, event=ModifiedEvent):
        self.addDriver(driver)
        self.fireEvent(driver.nodeId, event)

    def subscriptionCount(self, nodeId):
        return len(self.observers.get(nodeId, {}))

    def observedEvents(self, nodeId):
        return [events for events, callback in self.observers.get(nodeId, {}).values()]

    #
    # ResliceScene
    #

    def getDriver(self, nodeId):
        return self.drivers.get(nodeId)

    def addObserver(self, nodeId, events, callback):
        tag = self._nextTag
        self._nextTag += 1
        self.observers.setdefault(nodeId, {})[tag] = (list(events), callback)
        self.addObserverCount += 1
        return [tag]

    def removeObserver(self, nodeId, tags):
        nodeObservers = self.observers.get(nodeId, {})
        for tag in tags:
            nodeObservers.pop(tag, None)
        if not nodeObservers:
            self.observers.pop(nodeId, None)

    def getSliceIds(self):
        return list(self.sliceAttributes.keys())

    def getSliceAttribute(self, sliceId, name):
        return self.sliceAttributes.get(sliceId, {}).get(name)

    def setSliceAttribute(self, sliceId, name, value):
        self.sliceAttributes.setdefault(sliceId, {})[name] = value

    def removeSliceAttribute(self, sliceId, name):
        self.sliceAttributes.get(sliceId, {}).pop(name, None)

    def setSliceToWorld(self, sliceId, matrix):
        if sliceId in self.failingSlices:
            raise RuntimeError(f"cannot write slice {sliceId}")
        self.sliceToWorld[sliceId] = arrayFromVTKMatrix(matrix)

    def sliceModified(self, sliceId):
        self.sliceModifiedCount[sliceId] = self.sliceModifiedCount.get(sliceId, 0) + 1
        if self.onSliceModified is not None:
            self.onSliceModified(sliceId)
