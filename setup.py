"""
Setup script for the GNN ONNX export package.
"""

from setuptools import setup, find_packages

setup(
    name="gnn_onnx",
    version="1.0.0",
    description="GNN node classification with ONNX export and runtime verification",
    author="GNN ONNX Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"config": ["*.yaml"]},
    python_requires=">=3.9",
    install_requires=[
        "torch>=2.5.0",
        "torch-geometric>=2.5.0",
        "onnx>=1.15.0",
        "onnxruntime>=1.17.0",
        "networkx>=3.0",
        "numpy>=1.23.0",
        "pyyaml>=6.0",
        "scikit-learn>=1.2.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.3.0",
            "matplotlib>=3.7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "gnn-onnx-train=scripts.train:main",
            "gnn-onnx-export=scripts.export_model:main",
            "gnn-onnx-verify=scripts.verify_onnx:main",
            "gnn-onnx-smoke=scripts.smoke_test:main",
            "gnn-onnx-evaluate=scripts.evaluate:main",
        ],
    },
)
