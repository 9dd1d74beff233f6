from setuptools import setup

setup(
    name='parallel-cart',
    version='1.0',
    py_modules=[
        'cart_classifier',
        'dataset',
        'impurity',
        'partition',
        'split_search',
        'tree_builder',
        'tree_errors',
        'tree_nodes',
    ],
    description='Binary Gini decision trees with a fork-join parallel split search',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    python_requires='>=3.10',
    install_requires=['numpy'],
    extras_require={
        'test': ['pytest'],
        'experiments': ['scikit-learn'],
    },
)
