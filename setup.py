import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name='sklearn_mongel',
    version='0.0',
    packages=setuptools.find_packages(),
    license='BSD',
    description='Implementation of the *MoNGEL* algorithm, learning '
                'monotonic rule sets of generalized hyperrectangles, for '
                'scikit-learn.',
    long_description=long_description,
    long_description_content_type="text/markdown",
    python_requires='>=3.8',
    install_requires=[
        'scikit_learn >= 1.0',
        'numpy',
    ],
    extras_require={
        'tests': ['matplotlib', 'pytest >= 3.5'],
        'plot': ['matplotlib'],
    },
)
