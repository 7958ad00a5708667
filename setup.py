from setuptools import setup, find_packages

setup(
    name="topomesh",
    version="0.1.0",
    description="Colored, flat shaded triangle meshes from elevation grids",
    python_requires=">=3.8",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "numpy",
        "meshio",
        "Pillow",
        "pyproj",
        "PyYAML",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "topomesh=topomesh.application:generate_mesh",
        ],
    },
)
