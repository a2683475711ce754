"""
Post-processing: export of meshes and fields.
"""

from .vtk import export_vtk_unstructured
