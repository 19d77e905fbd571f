"""
attendance

Pipeline dự đoán khả năng tham gia lớp học (fitness class attendance):
Load -> Clean -> Encode -> Split -> Train -> Evaluate -> Plot.
"""

__version__ = "0.1.0"
