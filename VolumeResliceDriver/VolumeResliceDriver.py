import logging

import vtk

import slicer
from slicer.ScriptedLoadableModule import *
from slicer.util import VTKObservationMixin

from VolumeResliceDriverLib import (
    LineLandmark,
    PlaneLandmark,
    PointLandmark,
    ResliceDispatcher,
    ResliceScene,
    RigidFrame,
    VolumetricImage,
    readBinding,
)
from VolumeResliceDriverLib.modes import MODE_AXIAL, MODE_INPLANE, MODE_NONE

#
# VolumeResliceDriver
#

class VolumeResliceDriver(ScriptedLoadableModule):
    """Uses ScriptedLoadableModule base class, available at:
    https://github.com/Slicer/Slicer/blob/main/Base/Python/slicer/ScriptedLoadableModule.py
    """

    def __init__(self, parent):
        ScriptedLoadableModule.__init__(self, parent)
        self.parent.title = "Volume Reslice Driver"
        self.parent.categories = ["IGT"]
        self.parent.dependencies = []
        self.parent.contributors = ["Volume Reslice Driver developers"]
        self.parent.helpText = """
        Keeps slice views aligned with the pose of a transform, volume, line, plane or point
        node. The slice follows the driver whenever it moves. Configuration is stored on the
        slice nodes, so it is saved and restored with the scene.
        """
        self.parent.acknowledgementText = """
        Based on the volume reslice driver of the Slicer OpenIGTLink interface.
        """
        self.parent.hidden = True

        # One logic shared by every module that wants to drive slices
        slicer.app.connect("startupCompleted()", createSharedLogic)


def createSharedLogic():
    try:
        slicer.modules.volumeResliceDriverLogic
    except AttributeError:
        slicer.modules.volumeResliceDriverLogic = VolumeResliceDriverLogic()
    return slicer.modules.volumeResliceDriverLogic


#
# MRMLResliceScene
#

class MRMLResliceScene(ResliceScene):
    """Gives the reslice dispatcher access to an MRML scene"""

    def __init__(self, mrmlScene):
        self.mrmlScene = mrmlScene

    def _node(self, nodeId):
        if not nodeId:
            return None
        return self.mrmlScene.GetNodeByID(nodeId)

    def _sliceNode(self, sliceId):
        node = self._node(sliceId)
        if node is None or not node.IsA('vtkMRMLSliceNode'):
            logging.error(f"Slice node {sliceId} not found")
            return None
        return node

    def _driverEvents(self, node):
        events = [slicer.vtkMRMLTransformableNode.TransformModifiedEvent]
        contentModifiedEvents = node.GetContentModifiedEvents()
        if contentModifiedEvents:
            for i in range(contentModifiedEvents.GetNumberOfValues()):
                events.append(contentModifiedEvents.GetValue(i))
        return events

    def _controlPointWorld(self, node, index):
        if node.GetNumberOfControlPoints() <= index:
            return None
        position = [0.0, 0.0, 0.0]
        node.GetNthControlPointPositionWorld(index, position)
        return position

    def getDriver(self, nodeId):
        node = self._node(nodeId)
        if node is None or not node.IsA('vtkMRMLTransformableNode'):
            return None
        events = self._driverEvents(node)

        if node.IsA('vtkMRMLTransformNode'):
            if not node.IsLinear():
                return None
            transformToWorld = vtk.vtkMatrix4x4()
            if not node.GetMatrixTransformToWorld(transformToWorld):
                transformToWorld = None
            return RigidFrame(nodeId, transformToWorld, events=events)

        if node.IsA('vtkMRMLScalarVolumeNode'):
            ijkToRAS = vtk.vtkMatrix4x4()
            node.GetIJKToRASMatrix(ijkToRAS)
            imageData = node.GetImageData()
            dimensions = imageData.GetDimensions() if imageData is not None else None
            parentToWorld = None
            parentNode = node.GetParentTransformNode()
            if parentNode is not None and parentNode.IsLinear():
                parentToWorld = vtk.vtkMatrix4x4()
                if not parentNode.GetMatrixTransformToWorld(parentToWorld):
                    parentToWorld = None
            return VolumetricImage(nodeId, ijkToRAS, dimensions, parentToWorld, events=events)

        if node.IsA('vtkMRMLMarkupsPlaneNode'):
            planeToWorld = vtk.vtkMatrix4x4()
            node.GetObjectToWorldMatrix(planeToWorld)
            return PlaneLandmark(nodeId, planeToWorld, events=events)

        if node.IsA('vtkMRMLMarkupsLineNode'):
            return LineLandmark(nodeId, self._controlPointWorld(node, 0), self._controlPointWorld(node, 1), events=events)

        if node.IsA('vtkMRMLMarkupsFiducialNode'):
            return PointLandmark(nodeId, self._controlPointWorld(node, 0), events=events)

        if node.IsA('vtkMRMLAnnotationRulerNode'):
            position1 = [0.0, 0.0, 0.0, 1.0]
            position2 = [0.0, 0.0, 0.0, 1.0]
            node.GetPositionWorldCoordinates1(position1)
            node.GetPositionWorldCoordinates2(position2)
            return LineLandmark(nodeId, position1, position2, events=events)

        return None

    def addObserver(self, nodeId, events, callback):
        node = self._node(nodeId)
        if node is None:
            return []
        tags = []
        for event in events:
            # the callback gets the id the driver was bound with, not the VTK event name
            observer = lambda caller, eventName, event=event: callback(nodeId, event)
            tags.append((node, node.AddObserver(event, observer)))
        return tags

    def removeObserver(self, nodeId, tags):
        for node, tag in tags:
            node.RemoveObserver(tag)

    def getSliceIds(self):
        return [sliceNode.GetID() for sliceNode in slicer.util.getNodesByClass('vtkMRMLSliceNode', self.mrmlScene)]

    def getSliceAttribute(self, sliceId, name):
        sliceNode = self._sliceNode(sliceId)
        if sliceNode is None:
            return None
        return sliceNode.GetAttribute(name)

    def setSliceAttribute(self, sliceId, name, value):
        sliceNode = self._sliceNode(sliceId)
        if sliceNode is not None:
            sliceNode.SetAttribute(name, value)

    def removeSliceAttribute(self, sliceId, name):
        sliceNode = self._sliceNode(sliceId)
        if sliceNode is not None:
            sliceNode.RemoveAttribute(name)

    def setSliceToWorld(self, sliceId, matrix):
        sliceNode = self._sliceNode(sliceId)
        if sliceNode is not None:
            sliceNode.GetSliceToRAS().DeepCopy(matrix)

    def sliceModified(self, sliceId):
        sliceNode = self._sliceNode(sliceId)
        if sliceNode is not None:
            sliceNode.UpdateMatrices()


#
# VolumeResliceDriverLogic
#

def _nodeID(node):
    if node is None or isinstance(node, str):
        return node
    return node.GetID()


class VolumeResliceDriverLogic(ScriptedLoadableModuleLogic, VTKObservationMixin):
    """This class should implement all the actual
    computation done by your module.  The interface
    should be such that other python code can import
    this class and make use of the functionality without
    requiring an instance of the Widget.
    Uses ScriptedLoadableModuleLogic base class, available at:
    https://github.com/Slicer/Slicer/blob/main/Base/Python/slicer/ScriptedLoadableModule.py

    Slices and drivers can be given as nodes or node IDs.
    """

    def __init__(self, mrmlScene=None):
        ScriptedLoadableModuleLogic.__init__(self)
        VTKObservationMixin.__init__(self)
        self.mrmlScene = None
        self.dispatcher = None
        self.bindingsModifiedCallbacks = []
        self.setMRMLScene(mrmlScene if mrmlScene is not None else slicer.mrmlScene)

    def setMRMLScene(self, mrmlScene):
        self.cleanup()
        self.mrmlScene = mrmlScene
        self.dispatcher = ResliceDispatcher(MRMLResliceScene(mrmlScene))
        self.dispatcher.registry.addModifiedObserver(self.onBindingsModified)
        self.addObserver(mrmlScene, mrmlScene.EndBatchProcessEvent, self.onSceneUpdated)
        self.addObserver(mrmlScene, mrmlScene.EndImportEvent, self.onSceneUpdated)
        self.addObserver(mrmlScene, mrmlScene.NodeRemovedEvent, self.onNodeRemoved)
        self.addObserver(mrmlScene, mrmlScene.StartCloseEvent, self.onSceneStartClose)
        self.dispatcher.rescanScene()

    def cleanup(self):
        self.removeObservers()
        if self.dispatcher is not None:
            self.dispatcher.clear()

    def onSceneUpdated(self, caller, event):
        self.dispatcher.rescanScene()

    @vtk.calldata_type(vtk.VTK_OBJECT)
    def onNodeRemoved(self, caller, event, calldata):
        if calldata is not None:
            self.dispatcher.onNodeRemoved(calldata.GetID())

    def onSceneStartClose(self, caller, event):
        self.dispatcher.clear()

    def addBindingsModifiedObserver(self, callback):
        """Call callback() once after each configuration change or rescan,
        e.g. to refresh a GUI listing the driven slices."""
        self.bindingsModifiedCallbacks.append(callback)

    def removeBindingsModifiedObserver(self, callback):
        if callback in self.bindingsModifiedCallbacks:
            self.bindingsModifiedCallbacks.remove(callback)

    def onBindingsModified(self):
        for callback in list(self.bindingsModifiedCallbacks):
            callback()

    def setDriverForSlice(self, driverNode, sliceNode):
        self.dispatcher.setDriverForSlice(_nodeID(driverNode), _nodeID(sliceNode))

    def setModeForSlice(self, mode, sliceNode):
        self.dispatcher.setModeForSlice(mode, _nodeID(sliceNode))

    def setRotationForSlice(self, rotation, sliceNode):
        self.dispatcher.setRotationForSlice(rotation, _nodeID(sliceNode))

    def setFlipForSlice(self, flip, sliceNode):
        self.dispatcher.setFlipForSlice(flip, _nodeID(sliceNode))

    def rescanScene(self):
        self.dispatcher.rescanScene()

    def getBindingForSlice(self, sliceNode):
        """Current driver and settings of a slice, as stored on the slice node"""
        return readBinding(self.dispatcher.scene, _nodeID(sliceNode))

    def getDriverForSlice(self, sliceNode):
        binding = self.dispatcher.registry.binding(_nodeID(sliceNode))
        if binding is None or not binding.isActive:
            return None
        return self.mrmlScene.GetNodeByID(binding.driverId)


#
# VolumeResliceDriverTest
#

class VolumeResliceDriverTest(ScriptedLoadableModuleTest):
    """
    This is the test case for your scripted module.
    Uses ScriptedLoadableModuleTest base class, available at:
    https://github.com/Slicer/Slicer/blob/main/Base/Python/slicer/ScriptedLoadableModule.py
    """

    def setUp(self):
        """ Do whatever is needed to reset the state - typically a scene clear will be enough.
        """
        slicer.mrmlScene.Clear(0)

    def runTest(self):
        """Run as few or as many tests as needed here.
        """
        self.setUp()
        self.test_TransformDrivesSlice()
        self.setUp()
        self.test_LineDrivesSlice()

    def sliceToRASArray(self, sliceNode):
        return slicer.util.arrayFromVTKMatrix(sliceNode.GetSliceToRAS())

    def test_TransformDrivesSlice(self):
        self.delayDisplay("Starting the test")
        sliceNode = slicer.mrmlScene.GetNodeByID('vtkMRMLSliceNodeRed')
        transformNode = slicer.mrmlScene.AddNewNodeByClass('vtkMRMLLinearTransformNode')
        matrix = vtk.vtkMatrix4x4()
        matrix.SetElement(0, 3, 10.0)
        matrix.SetElement(1, 3, 20.0)
        matrix.SetElement(2, 3, 30.0)
        transformNode.SetMatrixTransformToParent(matrix)

        logic = VolumeResliceDriverLogic()
        bindingChanges = []
        logic.addBindingsModifiedObserver(lambda: bindingChanges.append(True))
        logic.setModeForSlice(MODE_AXIAL, sliceNode)
        logic.setDriverForSlice(transformNode, sliceNode)
        self.assertEqual(len(bindingChanges), 2)
        self.assertEqual(logic.getDriverForSlice(sliceNode), transformNode)
        self.assertEqual(logic.getBindingForSlice(sliceNode).mode, MODE_AXIAL)
        self.assertEqual(list(self.sliceToRASArray(sliceNode)[:3, 3]), [10.0, 20.0, 30.0])

        matrix.SetElement(0, 3, -5.0)
        transformNode.SetMatrixTransformToParent(matrix)
        self.assertEqual(self.sliceToRASArray(sliceNode)[0, 3], -5.0)

        logic.setModeForSlice(MODE_NONE, sliceNode)
        matrix.SetElement(0, 3, 100.0)
        transformNode.SetMatrixTransformToParent(matrix)
        self.assertEqual(self.sliceToRASArray(sliceNode)[0, 3], -5.0)

        slicer.mrmlScene.RemoveNode(transformNode)
        self.assertIsNone(logic.getDriverForSlice(sliceNode))
        logic.cleanup()
        self.delayDisplay('Test passed!')

    def test_LineDrivesSlice(self):
        self.delayDisplay("Starting the test")
        sliceNode = slicer.mrmlScene.GetNodeByID('vtkMRMLSliceNodeYellow')
        lineNode = slicer.mrmlScene.AddNewNodeByClass('vtkMRMLMarkupsLineNode')
        lineNode.AddControlPointWorld(vtk.vtkVector3d(0.0, 0.0, 0.0))
        lineNode.AddControlPointWorld(vtk.vtkVector3d(1.0, 0.0, 0.0))

        logic = VolumeResliceDriverLogic()
        logic.setDriverForSlice(lineNode, sliceNode)
        logic.setModeForSlice(MODE_INPLANE, sliceNode)
        self.assertEqual(list(self.sliceToRASArray(sliceNode)[:3, 3]), [1.0, 0.0, 0.0])

        lineNode.SetNthControlPointPositionWorld(1, 0.0, 0.0, 7.0)
        self.assertEqual(list(self.sliceToRASArray(sliceNode)[:3, 3]), [0.0, 0.0, 7.0])
        logic.cleanup()
        self.delayDisplay('Test passed!')
