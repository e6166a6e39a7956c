import os

from setuptools import setup

DESCRIPTION = 'N5 containers stored in HDF5 files.'

with open('README.md') as f:
    LONG_DESCRIPTION = f.read()

version = {}
with open(os.path.join('n5hdf5', 'version.py')) as f:
    exec(f.read(), version)

dependencies = [
    'asciitree',
    'numpy>=1.7',
    'h5py>=3.0',
    'numcodecs>=0.6.4',
]

setup(
    name='n5hdf5',
    description=DESCRIPTION,
    long_description=LONG_DESCRIPTION,
    long_description_content_type='text/markdown',
    version=version['version'],
    setup_requires=[
        'setuptools>=38.6.0',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    python_requires='>=3.7, <4',
    install_requires=dependencies,
    package_dir={'': '.'},
    packages=['n5hdf5', 'n5hdf5._storage', 'n5hdf5.tests'],
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Intended Audience :: Information Technology',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: BSD License',
        'Programming Language :: Python',
        'Topic :: Software Development :: Libraries :: Python Modules',
        'Operating System :: Unix',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.7',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
    ],
    license='BSD',
)
