import cv2
import matplotlib.pyplot as plt
import numpy as np
from PIL import Image

from bowtree.database import QueryResults, Result
from bowtree.drawing import draw_keypoints, show_query_results


def test_show_query_results_titles_entries(image_dir, monkeypatch):
    monkeypatch.setattr(plt, "show", lambda: None)
    paths = sorted(str(p) for p in image_dir.glob("*.png"))[:2]
    results = QueryResults([Result(1, 0.9, 3), Result(7, 0.1, 1)])

    fig = show_query_results(paths[0], results, paths, max_display=4)
    titles = [ax.get_title() for ax in fig.axes]
    # entry 7 has no image path and is left out
    assert len(titles) == 2
    assert titles[0].startswith("Query")
    assert "entry 1" in titles[1]
    assert "score 0.900, 3 words" in titles[1]
    plt.close(fig)


def test_draw_keypoints_marks_image():
    img = Image.fromarray(np.zeros((40, 40), dtype=np.uint8))
    out = draw_keypoints(img, [cv2.KeyPoint(20.0, 20.0, 10.0, 0.0)])
    arr = np.asarray(out)
    assert out.mode == "RGB"
    assert arr[:, :, 1].max() == 255
