from pulse_app.core.drag_reorder import DragReorderController, LayoutSlot, Point, Rect

ROW_HEIGHT = 40


def _row(index: int) -> Rect:
    return Rect(0, index * ROW_HEIGHT, 200, ROW_HEIGHT)


def _controller(commits: list[list[str]] | None = None) -> DragReorderController:
    controller = DragReorderController(on_commit=commits.append if commits is not None else None)
    controller.set_items(["a", "b", "c"])
    return controller


def test_dragging_first_row_to_the_end_commits_new_order():
    commits: list[list[str]] = []
    controller = _controller(commits)

    assert controller.press("a", Point(10, 20), _row(0))
    # The placeholder occupies slot 0, so b and c sit at rows 1 and 2.
    assert controller.move(Point(10, 110), [_row(1), _row(2)]) == 2

    commit = controller.release()

    assert commit is not None
    assert (commit.from_index, commit.to_index) == (0, 2)
    assert commit.order == ("b", "c", "a")
    assert commits == [["b", "c", "a"]]
    assert controller.items == ["b", "c", "a"]
    assert not controller.is_dragging


def test_release_in_place_commits_nothing():
    commits: list[list[str]] = []
    controller = _controller(commits)

    controller.press("b", Point(10, 60), _row(1))
    controller.move(Point(10, 65), [_row(0), _row(2)])

    assert controller.release() is None
    assert commits == []


def test_second_press_is_refused_while_dragging():
    controller = _controller()

    assert controller.press("a", Point(10, 20), _row(0))
    assert not controller.press("b", Point(10, 60), _row(1))
    assert controller.dragging_id == "a"


def test_target_index_is_clamped_on_release():
    controller = _controller()
    controller.press("c", Point(10, 100), _row(2))
    controller.move(Point(10, -500), [_row(0), _row(1)])

    commit = controller.release()

    assert commit is not None and commit.order == ("c", "a", "b")


def test_layout_inserts_placeholder_with_origin_height():
    controller = _controller()
    controller.press("a", Point(10, 20), _row(0))
    controller.move(Point(10, 70), [_row(1), _row(2)])

    assert controller.layout() == [
        LayoutSlot(item_id="b"),
        LayoutSlot(item_id=None, height=ROW_HEIGHT),
        LayoutSlot(item_id="c"),
    ]


def test_ghost_follows_pointer_vertically_only():
    controller = _controller()
    controller.press("a", Point(10, 20), _row(0))

    controller.move(Point(80, 95), [_row(1), _row(2)])

    assert controller.ghost_target() == Point(0, 75)


def test_ghost_drift_is_corrected_from_observed_position():
    controller = _controller()
    controller.press("a", Point(10, 20), _row(0))
    controller.move(Point(10, 95), [_row(1), _row(2)])

    # An ancestor shifted the ghost 12px up.
    assert controller.observe_ghost(Point(0, 63))
    assert controller.ghost_position() == Point(0, 87)
    assert not controller.observe_ghost(Point(0, 74.5))


def test_cancel_abandons_the_drag():
    commits: list[list[str]] = []
    controller = _controller(commits)
    controller.press("a", Point(10, 20), _row(0))
    controller.move(Point(10, 110), [_row(1), _row(2)])

    controller.cancel()

    assert controller.release() is None
    assert controller.items == ["a", "b", "c"]
    assert commits == []


def test_item_removed_during_drag_is_not_committed():
    controller = _controller()
    controller.press("a", Point(10, 20), _row(0))
    controller.set_items(["b", "c"])

    assert controller.release() is None
