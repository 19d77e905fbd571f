"""
tests/test_models/test_evaluator.py

Tests cho evaluator (accuracy từ confusion matrix, RMSE, ROC/AUC, bảng so sánh).
"""
import logging

import numpy as np
import pytest

from attendance.models.evaluator import ModelEvaluator, accuracy_from_confusion, rmse


def test_evaluate_with_predict_proba(trained_model, sample_train_test_split, mock_logger):
    """Test model evaluation with predict_proba method."""
    X_train, X_test, y_train, y_test = sample_train_test_split

    evaluator = ModelEvaluator(logger=mock_logger)
    res = evaluator.evaluate(trained_model, X_test, y_test, model_name='random_forest')

    # Basic structure
    for key in ('metrics', 'y_pred', 'y_pred_proba', 'classification_report',
                'confusion_matrix', 'roc_curve_data'):
        assert key in res

    metrics = res['metrics']
    for k in ('accuracy', 'precision', 'recall', 'f1', 'roc_auc'):
        assert 0.0 <= metrics[k] <= 1.0
    assert metrics['rmse'] >= 0.0

    assert len(res['y_pred']) == len(y_test)

    cm = res['confusion_matrix']
    assert cm.shape == (2, 2)
    assert cm.sum() == len(y_test)

    fpr, tpr, auc = res['roc_curve_data']
    assert len(fpr) == len(tpr)
    assert auc == metrics['roc_auc']


def test_forest_score_is_mean_tree_probability(trained_model, sample_train_test_split):
    """Điểm ROC của forest là xác suất class 1 trung bình của các cây, không phải tỷ lệ phiếu cứng."""
    X_train, X_test, y_train, y_test = sample_train_test_split

    res = ModelEvaluator().evaluate(trained_model, X_test, y_test, model_name='random_forest')

    per_tree = np.mean([tree.predict_proba(X_test.values)[:, 1] for tree in trained_model.estimators_], axis=0)
    np.testing.assert_allclose(np.asarray(res['y_pred_proba']), per_tree, rtol=1e-6)


def test_accuracy_matches_confusion_diagonal(trained_model, sample_train_test_split):
    X_train, X_test, y_train, y_test = sample_train_test_split

    res = ModelEvaluator().evaluate(trained_model, X_test, y_test, model_name='random_forest')

    cm = res['confusion_matrix']
    assert res['metrics']['accuracy'] == pytest.approx(np.trace(cm) / cm.sum())
    assert res['metrics']['accuracy'] == pytest.approx(np.mean(res['y_pred'] == np.asarray(y_test)))


def test_rmse_on_binary_labels(trained_model, sample_train_test_split):
    """Với nhãn 0/1, RMSE^2 chính là tỷ lệ dự đoán sai."""
    X_train, X_test, y_train, y_test = sample_train_test_split

    metrics = ModelEvaluator().evaluate(trained_model, X_test, y_test)['metrics']

    assert metrics['rmse'] ** 2 == pytest.approx(1 - metrics['accuracy'])


def test_threshold_prediction(sample_train_test_split):
    from sklearn.linear_model import LogisticRegression

    X_train, X_test, y_train, y_test = sample_train_test_split
    model = LogisticRegression(max_iter=1000).fit(X_train, y_train)

    res = ModelEvaluator().evaluate(model, X_test, y_test, 'logistic_regression', threshold=0.5)

    expected = (model.predict_proba(X_test)[:, 1] > 0.5).astype(int)
    np.testing.assert_array_equal(res['y_pred'], expected)

    strict = ModelEvaluator().evaluate(model, X_test, y_test, 'logistic_regression', threshold=0.99)
    assert strict['y_pred'].sum() <= res['y_pred'].sum()


def test_evaluate_without_predict_proba(sample_train_test_split):
    """Test model evaluation without predict_proba method."""
    from sklearn.svm import SVC

    X_train, X_test, y_train, y_test = sample_train_test_split

    # SVC with probability=False does not provide predict_proba
    model = SVC(kernel='linear', probability=False, random_state=42)
    model.fit(X_train, y_train)

    res = ModelEvaluator().evaluate(model, X_test, y_test, model_name='svc')

    assert res['y_pred_proba'] is None
    assert res['roc_curve_data'] is None
    assert 'roc_auc' not in res['metrics']
    for k in ('accuracy', 'precision', 'recall', 'f1'):
        assert 0.0 <= res['metrics'][k] <= 1.0

    with pytest.raises(ValueError, match="predict_proba"):
        ModelEvaluator().evaluate(model, X_test, y_test, model_name='svc', threshold=0.5)


def test_single_class_test_labels_raise(trained_model, sample_train_test_split):
    X_train, X_test, y_train, y_test = sample_train_test_split
    mask = np.asarray(y_test) == 1

    with pytest.raises(ValueError, match="single class"):
        ModelEvaluator().evaluate(trained_model, X_test[mask], y_test[mask])


def test_accuracy_from_confusion():
    cm = np.array([[5, 1], [2, 2]])

    assert accuracy_from_confusion(cm) == pytest.approx(0.7)

    with pytest.raises(ValueError):
        accuracy_from_confusion(np.zeros((2, 2), dtype=int))


def test_rmse_values():
    assert rmse([0, 1, 1, 0], [0, 1, 1, 0]) == 0.0
    assert rmse([0, 1, 1, 0], [1, 1, 1, 1]) == pytest.approx(np.sqrt(0.5))


def test_build_comparison_table():
    results = {
        'logistic_regression': {'metrics': {'accuracy': 0.75, 'rmse': 0.5, 'roc_auc': 0.82, 'f1': 0.6}},
        'random_forest': {'accuracy': 0.78, 'rmse': 0.47, 'roc_auc': 0.80},
    }

    table = ModelEvaluator.build_comparison_table(results)

    assert list(table.columns) == ['accuracy', 'rmse', 'roc_auc']
    assert table.index.name == 'model'
    assert table.loc['random_forest', 'rmse'] == pytest.approx(0.47)
    assert table.loc['logistic_regression', 'roc_auc'] == pytest.approx(0.82)


def test_logging_on_evaluate(caplog, trained_model, sample_train_test_split):
    """Test logging during model evaluation."""
    X_train, X_test, y_train, y_test = sample_train_test_split

    caplog.set_level(logging.INFO)
    evaluator = ModelEvaluator(logger=logging.getLogger('test_logger'))
    evaluator.evaluate(trained_model, X_test, y_test, model_name='random_forest')

    assert '[EVALUATION] RANDOM_FOREST' in caplog.text
